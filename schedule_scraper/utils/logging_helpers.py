"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import date, datetime, timezone

from schedule_scraper.services.fetch_types import RoundSummary, ScrapeResult


def log_scrape_start(logger: logging.Logger, channel: str, start: date, end: date) -> None:
    """Log scrape operation start."""
    logger.info(
        f"Schedule scrape for '{channel}' ({start.isoformat()} to {end.isoformat()}) "
        f"started at {datetime.now(timezone.utc).isoformat()}"
    )


def log_scrape_end(logger: logging.Logger, result: ScrapeResult) -> None:
    """
    Log scrape operation end.

    Args:
        logger: Logger instance
        result: Final result of the scrape
    """
    logger.info(
        f"Schedule scrape finished ({result.state.value}) at {datetime.now(timezone.utc).isoformat()}: "
        f"{len(result.processed_dates)}/{len(result.requested_dates)} dates, {len(result.rows)} entries"
    )
    if result.unprocessed_dates:
        logger.warning(
            f"{len(result.unprocessed_dates)} date(s) were not scraped: "
            f"{', '.join(day.isoformat() for day in result.unprocessed_dates)}"
        )


def log_round_start(logger: logging.Logger, round_number: int, pending: int) -> None:
    """
    Log round dispatch header.

    Args:
        logger: Logger instance
        round_number: Current round (1-based)
        pending: Number of dates dispatched in this round
    """
    logger.info(f"Starting round {round_number}: {pending} date(s) pending")


def log_round_summary(logger: logging.Logger, summary: RoundSummary) -> None:
    """Log the reduced outcome of a round."""
    counts = ", ".join(
        f"{status.value}={count}" for status, count in sorted(
            summary.status_counts.items(), key=lambda item: item[0].value
        )
    )
    logger.info(
        f"Round {summary.round_number} summary - dispatched: {summary.dispatched}, "
        f"processed: {summary.processed} ({counts or 'no fetches'})"
    )
