"""
Shared fixtures for schedule scraper tests.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from schedule_test_utils import RecordingSleep

from schedule_scraper.services.fetch_coordinator import RoundSignals
from schedule_scraper.services.program_fetch_service import build_http_client


@pytest.fixture
def signals() -> RoundSignals:
    return RoundSignals()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """Build a real client over httpx.MockTransport; use it with `async with`."""

    def _factory(handler, **kwargs) -> httpx.AsyncClient:
        return build_http_client(transport=httpx.MockTransport(handler), **kwargs)

    return _factory
