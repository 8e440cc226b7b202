"""
Shared dataclasses used across the schedule scraping pipeline.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class FetchStatus(str, Enum):
    """Classification of a single date's fetch."""
    PARSED = "parsed"
    EMPTY = "empty"
    MALFORMED = "malformed"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    BLOCKED = "blocked"
    SKIPPED = "skipped"
    ROW_PARSE_ERROR = "row_parse_error"


class ScrapeState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    RETRY_WAIT = "retry_wait"
    DONE = "done"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class RequestSignature:
    """Per-request token derived from (date, channel)."""
    date: str
    channel: str
    code_name: str
    code: int

    @property
    def callback_name(self) -> str:
        return f"tvprogramen{self.code_name}"


@dataclass(frozen=True, slots=True)
class ScheduleRow:
    """One program-guide entry extracted from a schedule fragment."""
    timestamp_utc: datetime
    label: str
    searchable_text: str


@dataclass(slots=True)
class FetchOutcome:
    """Classified result of one HTTP fetch."""
    date: date
    status: FetchStatus
    program_html: str | None = None
    detail: str | None = None


@dataclass(slots=True)
class DateResult:
    """What a worker hands back to the orchestrator for one date."""
    date: date
    status: FetchStatus
    rows: list[ScheduleRow] = field(default_factory=list)

    @property
    def processed(self) -> bool:
        return self.status is FetchStatus.PARSED


@dataclass(slots=True)
class RoundSummary:
    round_number: int
    dispatched: int
    processed: int
    blocked: bool
    rate_limited: bool
    status_counts: Counter = field(default_factory=Counter)


@dataclass(slots=True)
class ScrapeResult:
    state: ScrapeState
    requested_dates: list[date]
    processed_dates: set[date]
    rows: list[ScheduleRow]
    rounds: list[RoundSummary] = field(default_factory=list)

    @property
    def unprocessed_dates(self) -> list[date]:
        return [day for day in self.requested_dates if day not in self.processed_dates]


__all__ = [
    "DateResult",
    "FetchOutcome",
    "FetchStatus",
    "RequestSignature",
    "RoundSummary",
    "ScheduleRow",
    "ScrapeResult",
    "ScrapeState",
]
