"""Shared data models — the contract between parser, database, allocation and sync.

The parser produces Event lists, the assembler turns them into Session objects,
the database stores Sessions, and the allocation engine turns a day's Sessions
into Allocation blocks for the sync driver.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class TokenUsage:
    """Token counters reported on a single assistant message."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass(frozen=True)
class Event:
    """A single user/assistant line extracted from a JSONL transcript."""

    timestamp: datetime
    directory: str | None = None
    token_usage: TokenUsage | None = None  # None means "no usage data", not zero


@dataclass(frozen=True)
class Session:
    """One source file's activity, with idle gaps excluded from the duration.

    Produced by parser.assemble_session, stored by db.upsert_session.
    """

    start: datetime
    end: datetime
    active_duration_seconds: int
    project: str  # working directory of the first event that had one, else ""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass(frozen=True)
class Allocation:
    """A contiguous block of the workday assigned to one Clockify project."""

    project_id: str
    start: datetime
    end: datetime

    @property
    def duration_seconds(self) -> int:
        return int((self.end - self.start).total_seconds())


@dataclass
class AllocationResult:
    allocations: list[Allocation] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # unmapped projects, deduplicated


class DayStatus(str, enum.Enum):
    """Completion state recorded per (date, workspace)."""

    COMPLETE = "complete"
