"""
Fetch Coordination

Round-scoped cancellation signals shared by the fetches of one round.
A fresh instance is created for every round, so both signals start cleared.
"""
import asyncio
import logging


logger = logging.getLogger(__name__)


class RoundSignals:
    """
    Cooperative cancellation for one scrape round.

    Fetches poll `is_cancelled()` after they obtain a connection slot and
    skip their request when either signal is set. Raising a signal never
    interrupts requests that are already on the wire.
    """

    def __init__(self):
        self._ip_blocked = asyncio.Event()
        self._rate_limited = asyncio.Event()

    @property
    def ip_blocked(self) -> bool:
        return self._ip_blocked.is_set()

    @property
    def rate_limited(self) -> bool:
        return self._rate_limited.is_set()

    def is_cancelled(self) -> bool:
        """
        Check whether the remaining work of this round should be skipped.

        Returns:
            True if a block or rate-limit signal was raised, False otherwise
        """
        return self.ip_blocked or self.rate_limited

    def signal_ip_block(self) -> None:
        if not self._ip_blocked.is_set():
            logger.debug("IP block signal raised; pending fetches will be skipped")
            self._ip_blocked.set()

    def signal_rate_limit(self) -> None:
        if not self._rate_limited.is_set():
            logger.debug("Rate limit signal raised; pending fetches will be skipped")
            self._rate_limited.set()
