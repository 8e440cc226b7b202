"""
Program Parser Service

Turns the endpoint's JSONP envelope into schedule rows and filters them
by search term.
"""
from collections.abc import Iterable, Iterator
import json
import logging

from lxml import etree  # type: ignore
from lxml import html as lxml_html  # type: ignore

from schedule_scraper.services.fetch_types import ScheduleRow
from schedule_scraper.utils.timezone import epoch_to_utc, format_utc_timestamp

logger = logging.getLogger(__name__)

_ROW_XPATH = ".//*[contains(concat(' ', normalize-space(@class), ' '), ' row ')]"
_LABEL_XPATH = (
    ".//*[contains(concat(' ', normalize-space(@class), ' '), ' col ')"
    " and not(contains(concat(' ', normalize-space(@class), ' '), ' time '))]"
)
TIMESTAMP_ATTRIBUTE = "data-ts"


class RowParseError(ValueError):
    """Raised when a schedule row carries no usable timestamp"""
    pass


def decode_envelope(body: str, callback_name: str) -> dict | None:
    """
    Unwrap a `<callback>(<json>)` response body.

    Args:
        body: Raw response text
        callback_name: JSONP callback the request asked for

    Returns:
        Decoded JSON object, or None if the body is not a JSON object
    """
    payload = body.strip()
    prefix = f"{callback_name}("
    if payload.startswith(prefix):
        payload = payload[len(prefix):]
    if payload.endswith(")"):
        payload = payload[:-1]

    try:
        decoded = json.loads(payload)
    except ValueError:
        return None

    if not isinstance(decoded, dict):
        return None
    return decoded


def extract_program_html(envelope: dict) -> str | None:
    """Return the non-blank `data.program` fragment, if any"""
    data = envelope.get("data")
    if not isinstance(data, dict):
        return None
    program = data.get("program")
    if program is None:
        return None
    program = str(program)
    return program if program.strip() else None


def parse_program(program_html: str) -> Iterator[ScheduleRow]:
    """
    Lazily yield schedule rows from a program HTML fragment.

    The iterator is single-pass; parse the fragment again to restart.

    Args:
        program_html: HTML fragment from the `data.program` field

    Yields:
        ScheduleRow for every `.row` element, in document order

    Raises:
        RowParseError: If a row has a missing or non-numeric `data-ts`
    """
    try:
        root = lxml_html.fragment_fromstring(program_html, create_parent="div")
    except etree.ParserError as e:
        raise RowParseError(f"Cannot parse program fragment: {e}") from e

    for row in root.xpath(_ROW_XPATH):
        yield _parse_row(row)


def _parse_row(row) -> ScheduleRow:
    raw_ts = row.get(TIMESTAMP_ATTRIBUTE)
    if raw_ts is None:
        raise RowParseError(f"Row is missing the {TIMESTAMP_ATTRIBUTE} attribute")

    try:
        timestamp = epoch_to_utc(int(raw_ts))
    except (ValueError, OverflowError, OSError) as e:
        raise RowParseError(f"Invalid {TIMESTAMP_ATTRIBUTE} value: {raw_ts!r}") from e

    label_cols = row.xpath(_LABEL_XPATH)
    label = _normalize_text(label_cols[0].text_content()) if label_cols else ""

    anchor = next(row.iter("a"), None)
    anchor_text = _normalize_text(anchor.text_content()) if anchor is not None else ""
    anchor_title = (anchor.get("title") or "") if anchor is not None else ""

    return ScheduleRow(
        timestamp_utc=timestamp,
        label=label,
        searchable_text=f"{label}{anchor_text}{anchor_title}",
    )


def _normalize_text(text: str) -> str:
    return " ".join(str(text).split())


def filter_rows(rows: Iterable[ScheduleRow], term: str | None) -> Iterator[ScheduleRow]:
    """
    Keep rows whose searchable text contains `term`, ignoring case.

    A blank or missing term keeps every row.
    """
    needle = term.casefold() if term and term.strip() else ""
    for row in rows:
        if not needle or needle in row.searchable_text.casefold():
            yield row


def format_entry(row: ScheduleRow) -> str:
    """Render a row as an output line: `<ISO-8601 timestamp>: <label>`"""
    return f"{format_utc_timestamp(row.timestamp_utc)}: {row.label}"
