"""
Program Fetch Service

Issues one schedule request per date under a shared connection limit and
classifies the response. Retry decisions are left to the orchestrator.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date

import httpx

from schedule_scraper.config import settings
from schedule_scraper.services.fetch_coordinator import RoundSignals
from schedule_scraper.services.fetch_types import FetchOutcome, FetchStatus, RequestSignature
from schedule_scraper.services.program_parser_service import decode_envelope, extract_program_html


logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 8
RATE_LIMIT_ERROR_CODE = 1226
COOKIE_NAME = "tvp_login"


def build_http_client(
    cookie: str | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create the HTTP client shared by all fetches of a run.

    Args:
        cookie: Optional tvp_login session value
        timeout: HTTP timeout in seconds (defaults to settings)
        transport: Optional transport override

    Returns:
        Configured httpx.AsyncClient
    """
    headers = {"X-Requested-With": "XMLHttpRequest"}
    if cookie:
        headers["Cookie"] = f"{COOKIE_NAME}={cookie}"

    return httpx.AsyncClient(
        headers=headers,
        timeout=timeout if timeout is not None else settings.request_timeout_sec,
        limits=httpx.Limits(max_connections=MAX_CONNECTIONS),
        transport=transport,
    )


class ProgramFetcher:
    """Fetches schedule pages with at most MAX_CONNECTIONS requests in flight."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        endpoint_url: str | None = None,
        max_concurrency: int = MAX_CONNECTIONS,
    ) -> None:
        self._client = client
        self._endpoint_url = endpoint_url or settings.program_endpoint_url
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch(
        self,
        day: date,
        channel: str,
        signature: RequestSignature,
        signals: RoundSignals,
    ) -> FetchOutcome:
        """
        Fetch and classify the schedule for one date.

        Args:
            day: Date being fetched
            channel: Channel slug
            signature: Precomputed request signature for (day, channel)
            signals: Cancellation signals of the current round

        Returns:
            FetchOutcome; errors are reported through its status, never raised
        """
        async with self._semaphore:
            if signals.is_cancelled():
                logger.debug("Skipping %s: round already cancelled", signature.date)
                return FetchOutcome(date=day, status=FetchStatus.SKIPPED)

            logger.info("Parsing %s", signature.date)
            try:
                response = await self._client.get(
                    self._endpoint_url,
                    params=self._build_params(channel, signature),
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Problem occurred getting %s: %s: %s",
                    signature.date,
                    type(e).__name__,
                    e,
                )
                return FetchOutcome(
                    date=day,
                    status=FetchStatus.SERVER_ERROR,
                    detail=type(e).__name__,
                )

        return self._classify(day, signature, response, signals)

    @staticmethod
    def _build_params(channel: str, signature: RequestSignature) -> dict[str, str]:
        return {
            "callback": signature.callback_name,
            "datum": signature.date,
            "kanal": channel,
            signature.code_name: str(signature.code),
        }

    def _classify(
        self,
        day: date,
        signature: RequestSignature,
        response: httpx.Response,
        signals: RoundSignals,
    ) -> FetchOutcome:
        if response.status_code == httpx.codes.FORBIDDEN:
            logger.error("Problem occurred getting %s: IP blocked. Try again later", signature.date)
            signals.signal_ip_block()
            return FetchOutcome(date=day, status=FetchStatus.BLOCKED)

        envelope = decode_envelope(response.text, signature.callback_name)
        if envelope is None:
            logger.warning("Problem occurred getting %s: Malformed data", signature.date)
            return FetchOutcome(date=day, status=FetchStatus.MALFORMED)

        if not response.is_success:
            if envelope.get("code") == RATE_LIMIT_ERROR_CODE:
                logger.warning("Rate limited while getting %s", signature.date)
                signals.signal_rate_limit()
                return FetchOutcome(date=day, status=FetchStatus.RATE_LIMITED)

            message = envelope.get("message")
            if message is not None:
                detail = str(message)
            else:
                detail = f"{response.status_code} - {response.reason_phrase}"
            logger.warning("Problem occurred getting %s: %s", signature.date, detail)
            return FetchOutcome(date=day, status=FetchStatus.SERVER_ERROR, detail=detail)

        program_html = extract_program_html(envelope)
        if program_html is None:
            logger.info("No program data for %s", signature.date)
            return FetchOutcome(date=day, status=FetchStatus.EMPTY)

        return FetchOutcome(date=day, status=FetchStatus.PARSED, program_html=program_html)
