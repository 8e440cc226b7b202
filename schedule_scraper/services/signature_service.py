"""
Request Signature Service

Derives the per-request code the schedule endpoint expects next to each
date/channel query. The remote side recomputes the same value, so the
arithmetic below must not change.
"""
from schedule_scraper.services.fetch_types import RequestSignature


_SALT = 4
_INT32_MASK = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    """Wrap an integer to a signed 32-bit value"""
    value &= _INT32_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def generate_signature(date: str, channel: str) -> RequestSignature:
    """
    Compute the request signature for one (date, channel) pair.

    Args:
        date: Date formatted as yyyy-MM-dd
        channel: Channel slug as used by the endpoint

    Returns:
        RequestSignature with the numeric code and its parameter name
    """
    base = f"{date}{channel}{_SALT}"
    aux = f"{channel}{date}" or "none"

    c = _SALT + sum(ord(ch) for ch in aux)

    b = 2
    for i in range(len(base) - 1, 0, -1):
        b = _to_int32(b + (ord(base[i]) + c * 2) * i)

    return RequestSignature(
        date=date,
        channel=channel,
        code_name=f"b{str(b)[-1]}",
        code=b,
    )
