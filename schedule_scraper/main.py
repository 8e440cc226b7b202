"""
Command-line entry point for the schedule scraper.

Prompts for any request field not passed as an option, scrapes the range and
writes the sorted entries to the output file.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

import httpx

from schedule_scraper.config import settings, setup_logging
from schedule_scraper.schemas import InputError, ScrapeRequest, build_scrape_request
from schedule_scraper.services import (
    ProgramFetcher,
    ScrapePipeline,
    ScrapeResult,
    build_http_client,
    format_entry,
)
from schedule_scraper.utils.file_operations import load_cookie, remove_output_file, write_output_file
from schedule_scraper.utils.logging_helpers import log_scrape_end, log_scrape_start


logger = logging.getLogger(__name__)


async def run_scrape(
    request: ScrapeRequest,
    *,
    cookie: str | None = None,
    output_path: Path | str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ScrapeResult:
    """
    Scrape the requested range and write the output file.

    Args:
        request: Validated scrape request
        cookie: Optional tvp_login session value
        output_path: Output file (defaults to settings.output_path)
        transport: Optional httpx transport override
        sleep: Coroutine used for the rate-limit backoff

    Returns:
        ScrapeResult of the run; the output file is written in every case
    """
    output = Path(output_path or settings.output_path)
    dates = request.dates()
    if not dates:
        logger.warning(
            "Start date %s is after end date %s - nothing to scrape",
            request.start.isoformat(),
            request.end.isoformat(),
        )

    remove_output_file(output)
    log_scrape_start(logger, request.channel, request.start, request.end)

    async with build_http_client(cookie, transport=transport) as client:
        pipeline = ScrapePipeline(
            request.channel,
            ProgramFetcher(client),
            search_term=request.search_term,
            sleep=sleep,
        )
        result = await pipeline.run(dates)

    entries = sorted(format_entry(row) for row in result.rows)
    await write_output_file(output, entries)
    log_scrape_end(logger, result)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedule-scraper",
        description="Scrape a channel's TV schedule over a date range",
    )
    parser.add_argument("cookie", nargs="?", help="tvp_login session cookie value")
    parser.add_argument("--start", help="Starting date (yyyy-MM-dd)")
    parser.add_argument("--end", help="Ending date (yyyy-MM-dd, defaults to today)")
    parser.add_argument("--channel", help="Channel name")
    parser.add_argument("--search", help="Search term")
    parser.add_argument("--output", help=f"Output file (default: {settings.output_path})")
    return parser


def collect_request(
    args: argparse.Namespace,
    prompt: Callable[[str], str] = input,
) -> ScrapeRequest:
    """
    Fill missing fields interactively and validate them.

    Raises:
        InputError: If a date or the channel is invalid
    """
    start = args.start if args.start is not None else prompt("Type a starting date (yyyy-MM-dd): ")
    end = args.end if args.end is not None else prompt("Type an ending date (optional): ")
    channel = args.channel if args.channel is not None else prompt("Type a channel name: ")
    search = args.search if args.search is not None else prompt("Type a search term (optional): ")

    return build_scrape_request(
        start_date=start.strip(),
        end_date=end.strip() or None,
        channel=channel,
        search_term=search or None,
    )


def main(argv: Sequence[str] | None = None, prompt: Callable[[str], str] = input) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    cookie = args.cookie or load_cookie(settings.cookie_file)

    try:
        request = collect_request(args, prompt)
    except InputError as e:
        logger.error("%s", e)
        return 1

    try:
        asyncio.run(run_scrape(request, cookie=cookie, output_path=args.output))
    except Exception as e:  # Catch-all so the CLI reports instead of crashing
        logger.error("Unexpected error during schedule scrape: %s", e, exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
