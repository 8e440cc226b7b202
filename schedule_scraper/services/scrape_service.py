"""
Schedule Scrape Service

Drives a scrape over a date range in rounds: every pending date is fetched
concurrently, the round is joined, and the reduced outcome decides whether
to stop, finish, or back off and retry the unprocessed remainder.
"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from datetime import date

from schedule_scraper.services.fetch_coordinator import RoundSignals
from schedule_scraper.services.fetch_types import (
    DateResult,
    FetchStatus,
    RoundSummary,
    ScheduleRow,
    ScrapeResult,
    ScrapeState,
)
from schedule_scraper.services.program_fetch_service import ProgramFetcher
from schedule_scraper.services.program_parser_service import (
    RowParseError,
    filter_rows,
    parse_program,
)
from schedule_scraper.services.signature_service import generate_signature
from schedule_scraper.utils.logging_helpers import log_round_start, log_round_summary
from schedule_scraper.utils.timezone import format_schedule_date


logger = logging.getLogger(__name__)

RATE_LIMIT_BACKOFF_SECONDS = 20


class ScrapePipeline:
    """Coordinates fetch rounds, signal handling and result merging for one run."""

    def __init__(
        self,
        channel: str,
        fetcher: ProgramFetcher,
        *,
        search_term: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.channel = channel
        self.search_term = search_term
        self._fetcher = fetcher
        self._sleep = sleep
        self.state = ScrapeState.IDLE

    async def run(self, dates: Sequence[date]) -> ScrapeResult:
        requested = list(dict.fromkeys(dates))
        processed: set[date] = set()
        rows: list[ScheduleRow] = []
        rounds: list[RoundSummary] = []

        pending = list(requested)
        self.state = ScrapeState.RUNNING

        while pending:
            summary = await self._run_round(len(rounds) + 1, pending, processed, rows)
            rounds.append(summary)

            if summary.blocked:
                logger.error("IP blocked - stopping without retry")
                self.state = ScrapeState.STOPPED
                break

            if not summary.rate_limited:
                self.state = ScrapeState.DONE
                break

            self.state = ScrapeState.RETRY_WAIT
            logger.warning(
                "Rate limited! Sleeping for %s seconds...", RATE_LIMIT_BACKOFF_SECONDS
            )
            await self._sleep(RATE_LIMIT_BACKOFF_SECONDS)
            pending = [day for day in requested if day not in processed]
            self.state = ScrapeState.RUNNING
        else:
            self.state = ScrapeState.DONE

        return ScrapeResult(
            state=self.state,
            requested_dates=requested,
            processed_dates=processed,
            rows=rows,
            rounds=rounds,
        )

    async def _run_round(
        self,
        round_number: int,
        pending: list[date],
        processed: set[date],
        rows: list[ScheduleRow],
    ) -> RoundSummary:
        log_round_start(logger, round_number, len(pending))
        signals = RoundSignals()

        tasks = [
            asyncio.create_task(self._process_date(day, signals))
            for day in pending
        ]
        results: list[DateResult] = await asyncio.gather(*tasks)

        status_counts: Counter = Counter()
        for result in results:
            status_counts[result.status] += 1
            if result.processed:
                rows.extend(result.rows)
                processed.add(result.date)

        summary = RoundSummary(
            round_number=round_number,
            dispatched=len(pending),
            processed=sum(1 for result in results if result.processed),
            blocked=status_counts[FetchStatus.BLOCKED] > 0,
            rate_limited=status_counts[FetchStatus.RATE_LIMITED] > 0,
            status_counts=status_counts,
        )
        log_round_summary(logger, summary)
        return summary

    async def _process_date(self, day: date, signals: RoundSignals) -> DateResult:
        signature = generate_signature(format_schedule_date(day), self.channel)
        outcome = await self._fetcher.fetch(day, self.channel, signature, signals)

        if outcome.status is not FetchStatus.PARSED or outcome.program_html is None:
            return DateResult(date=day, status=outcome.status)

        try:
            matching = list(filter_rows(parse_program(outcome.program_html), self.search_term))
        except RowParseError as exc:
            logger.error("Problem occurred parsing %s: %s", signature.date, exc)
            return DateResult(date=day, status=FetchStatus.ROW_PARSE_ERROR)

        logger.debug("%s: %s matching entries", signature.date, len(matching))
        return DateResult(date=day, status=FetchStatus.PARSED, rows=matching)
