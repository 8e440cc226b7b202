"""
Tests for the scrape orchestrator: rounds, signals and the retry loop.

The endpoint is faked with httpx.MockTransport and the 20 second backoff is
recorded instead of slept.
"""

from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest

from schedule_test_utils import (
    JAN_10_MIDNIGHT,
    RecordingHandler,
    RecordingSleep,
    jsonp_response,
    program_html,
    program_row,
    program_response,
    rate_limit_response,
)

from schedule_scraper.services.fetch_types import FetchStatus, ScrapeState
from schedule_scraper.services.program_fetch_service import ProgramFetcher
from schedule_scraper.services.program_parser_service import format_entry
from schedule_scraper.services.scrape_service import RATE_LIMIT_BACKOFF_SECONDS, ScrapePipeline
from schedule_scraper.utils.timezone import date_range

CHANNEL = "btv1"
JAN_10 = date(2024, 1, 10)

TWO_SHOWS = program_html(
    program_row(JAN_10_MIDNIGHT + 20 * 3600, "Movie", title="Late Movie"),
    program_row(JAN_10_MIDNIGHT + 7 * 3600, "News", title="Evening News"),
)


def _ok(html: str = TWO_SHOWS):
    return lambda request, attempt: program_response(request, html)


async def _run(mock_client, handler, dates, sleep: RecordingSleep, *, search_term=None, max_concurrency=8):
    async with mock_client(handler) as client:
        pipeline = ScrapePipeline(
            CHANNEL,
            ProgramFetcher(client, max_concurrency=max_concurrency),
            search_term=search_term,
            sleep=sleep,
        )
        result = await pipeline.run(dates)
    assert pipeline.state is result.state
    return result


@pytest.mark.asyncio
async def test_single_date_without_term_keeps_all_rows(mock_client, recording_sleep: RecordingSleep) -> None:
    handler = RecordingHandler({"2024-01-10": _ok()})

    result = await _run(mock_client, handler, [JAN_10], recording_sleep)

    assert result.state is ScrapeState.DONE
    assert result.processed_dates == {JAN_10}
    assert sorted(format_entry(row) for row in result.rows) == [
        "2024-01-10T07:00:00: News",
        "2024-01-10T20:00:00: Movie",
    ]
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_search_term_keeps_matching_row(mock_client, recording_sleep: RecordingSleep) -> None:
    handler = RecordingHandler({"2024-01-10": _ok()})

    result = await _run(mock_client, handler, [JAN_10], recording_sleep, search_term="movie")

    assert [row.label for row in result.rows] == ["Movie"]


@pytest.mark.asyncio
async def test_block_stops_without_retry(mock_client, recording_sleep: RecordingSleep) -> None:
    handler = RecordingHandler({"2024-01-10": lambda request, attempt: httpx.Response(403)})

    result = await _run(mock_client, handler, [JAN_10], recording_sleep)

    assert result.state is ScrapeState.STOPPED
    assert result.rows == []
    assert result.unprocessed_dates == [JAN_10]
    assert handler.count("2024-01-10") == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_rate_limit_retries_after_fixed_delay(mock_client, recording_sleep: RecordingSleep) -> None:
    def responder(request, attempt):
        if attempt == 1:
            return rate_limit_response(request)
        return program_response(request, TWO_SHOWS)

    handler = RecordingHandler({"2024-01-10": responder})

    result = await _run(mock_client, handler, [JAN_10], recording_sleep)

    assert result.state is ScrapeState.DONE
    assert recording_sleep.delays == [RATE_LIMIT_BACKOFF_SECONDS] == [20]
    assert handler.count("2024-01-10") == 2
    assert len(result.rounds) == 2
    assert result.rounds[0].rate_limited and not result.rounds[1].rate_limited
    assert len(result.rows) == 2


@pytest.mark.asyncio
async def test_retry_round_only_contains_unprocessed_dates(mock_client, recording_sleep: RecordingSleep) -> None:
    def limited_once(request, attempt):
        return rate_limit_response(request) if attempt == 1 else program_response(request, TWO_SHOWS)

    handler = RecordingHandler({
        "2024-01-10": _ok(),
        "2024-01-11": limited_once,
    })

    result = await _run(
        mock_client,
        handler,
        date_range(JAN_10, date(2024, 1, 11)),
        recording_sleep,
        max_concurrency=1,
    )

    assert result.state is ScrapeState.DONE
    assert handler.calls == ["2024-01-10", "2024-01-11", "2024-01-11"]
    assert result.rounds[1].dispatched == 1
    assert result.processed_dates == {JAN_10, date(2024, 1, 11)}
    assert len(result.rows) == 4


@pytest.mark.asyncio
async def test_block_wins_over_rate_limit(mock_client, recording_sleep: RecordingSleep) -> None:
    block_sent = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["datum"] == "2024-01-11":
            block_sent.set()
            return httpx.Response(403)
        await block_sent.wait()
        return rate_limit_response(request)

    result = await _run(
        mock_client,
        handler,
        date_range(JAN_10, date(2024, 1, 11)),
        recording_sleep,
    )

    assert result.state is ScrapeState.STOPPED
    assert result.rounds[0].blocked and result.rounds[0].rate_limited
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_signal_skips_fetches_waiting_for_a_slot(mock_client, recording_sleep: RecordingSleep) -> None:
    def limited_once(request, attempt):
        return rate_limit_response(request) if attempt == 1 else program_response(request, TWO_SHOWS)

    handler = RecordingHandler({
        "2024-01-10": limited_once,
        "2024-01-11": _ok(),
        "2024-01-12": _ok(),
    })

    result = await _run(
        mock_client,
        handler,
        date_range(JAN_10, date(2024, 1, 12)),
        recording_sleep,
        max_concurrency=1,
    )

    assert result.rounds[0].status_counts[FetchStatus.SKIPPED] == 2
    assert handler.count("2024-01-10") == 2
    assert handler.count("2024-01-11") == 1
    assert handler.count("2024-01-12") == 1
    assert result.state is ScrapeState.DONE
    assert len(result.processed_dates) == 3


@pytest.mark.asyncio
async def test_non_signal_failures_are_dropped(mock_client, recording_sleep: RecordingSleep) -> None:
    handler = RecordingHandler({
        "2024-01-10": _ok(),
        "2024-01-11": lambda request, attempt: httpx.Response(200, text="garbage"),
        "2024-01-12": lambda request, attempt: jsonp_response(request, {"message": "boom"}, status_code=500),
        "2024-01-13": lambda request, attempt: jsonp_response(request, {"data": {"program": ""}}),
        "2024-01-14": _ok(program_row("bad", "Broken")),
    })
    dates = date_range(JAN_10, date(2024, 1, 14))

    result = await _run(mock_client, handler, dates, recording_sleep)

    assert result.state is ScrapeState.DONE
    assert len(result.rounds) == 1
    assert result.processed_dates == {JAN_10}
    assert result.unprocessed_dates == dates[1:]
    assert result.rounds[0].status_counts[FetchStatus.ROW_PARSE_ERROR] == 1
    assert all(handler.count(day.isoformat()) == 1 for day in dates)
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_unrelated_rate_limit_sweeps_up_failed_dates(mock_client, recording_sleep: RecordingSleep) -> None:
    def limited_once(request, attempt):
        return rate_limit_response(request) if attempt == 1 else program_response(request, TWO_SHOWS)

    def broken_once(request, attempt):
        return httpx.Response(200, text="garbage") if attempt == 1 else program_response(request, TWO_SHOWS)

    handler = RecordingHandler({"2024-01-10": broken_once, "2024-01-11": limited_once})

    result = await _run(
        mock_client,
        handler,
        date_range(JAN_10, date(2024, 1, 11)),
        recording_sleep,
        max_concurrency=1,
    )

    assert result.state is ScrapeState.DONE
    assert handler.count("2024-01-10") == 2
    assert result.processed_dates == {JAN_10, date(2024, 1, 11)}


@pytest.mark.asyncio
async def test_every_date_is_dispatched_once_per_round(mock_client, recording_sleep: RecordingSleep) -> None:
    dates = date_range(JAN_10, date(2024, 1, 29))
    handler = RecordingHandler({day.isoformat(): _ok() for day in dates})

    result = await _run(mock_client, handler, dates + dates[:3], recording_sleep)

    assert result.requested_dates == dates
    assert sorted(handler.calls) == [day.isoformat() for day in dates]
    assert result.processed_dates == set(dates)
    assert result.unprocessed_dates == []


@pytest.mark.asyncio
async def test_in_flight_requests_never_exceed_eight(mock_client, recording_sleep: RecordingSleep) -> None:
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return program_response(request, "")

    async with mock_client(handler) as client:
        pipeline = ScrapePipeline(CHANNEL, ProgramFetcher(client), sleep=recording_sleep)
        result = await pipeline.run(date_range(JAN_10, date(2024, 1, 30)))

    assert 1 < peak <= 8
    assert result.state is ScrapeState.DONE


@pytest.mark.asyncio
async def test_empty_range_is_done_immediately(mock_client, recording_sleep: RecordingSleep) -> None:
    handler = RecordingHandler({})

    result = await _run(mock_client, handler, [], recording_sleep)

    assert result.state is ScrapeState.DONE
    assert result.rounds == []
    assert handler.calls == []
