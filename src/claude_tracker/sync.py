"""Sync driver — posts each unsynced workday's allocations to Clockify exactly once.

Walks calendar days from the earliest stored session through yesterday. Each
posted entry is recorded as soon as it succeeds and the day is marked complete
only after all of its allocations went through, so an interrupted or failed
run can simply be repeated: the split is re-derived from the stored sessions
and only the missing entries are posted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable

from claude_tracker import db
from claude_tracker.allocation import compute_allocations, is_weekday, workday_boundaries
from claude_tracker.clockify import ClockifyError, TimeEntryPoster
from claude_tracker.config import SyncConfig

logger = logging.getLogger(__name__)

# DayResult.status values
SYNCED = "synced"
NO_SESSIONS = "no-sessions"
ALL_SKIPPED = "all-skipped"


@dataclass
class DayResult:
    day: date
    status: str
    entries_posted: int = 0
    entries_already_synced: int = 0
    skipped_projects: list[str] = field(default_factory=list)


@dataclass
class SyncSummary:
    start_date: date | None = None
    end_date: date | None = None
    days_synced: int = 0
    entries_posted: int = 0
    days: list[DayResult] = field(default_factory=list)


class SyncAbortedError(RuntimeError):
    """Posting failed; the run stopped and the day was left unsynced."""

    def __init__(self, message: str, day: date, project_id: str, summary: SyncSummary):
        super().__init__(message)
        self.day = day
        self.project_id = project_id
        self.summary = summary


def run_sync(
    db_path: Path,
    config: SyncConfig,
    poster: TimeEntryPoster,
    today: date | None = None,
    on_day: Callable[[DayResult], None] | None = None,
) -> SyncSummary:
    """Process all unsynced workdays from the earliest session to yesterday.

    Calendar days, including today, are taken in the configured workday
    timezone. Today is never synced because its workday isn't over. Raises
    SyncAbortedError on the first failed post; WorkdayBoundaryError and
    storage errors propagate unchanged.
    """
    summary = SyncSummary()

    start_date = db.earliest_session_date(db_path, config.timezone)
    if start_date is None:
        logger.info("No sessions stored; nothing to sync")
        return summary

    if today is None:
        today = datetime.now(config.timezone).date()
    yesterday = today - timedelta(days=1)

    summary.start_date = start_date
    summary.end_date = yesterday

    current = start_date
    while current <= yesterday:
        day = current
        current += timedelta(days=1)

        if not is_weekday(day):
            continue
        if db.is_day_synced(db_path, day, config.workspace_id):
            logger.debug("%s already synced for workspace %s", day, config.workspace_id)
            continue

        result = _sync_day(db_path, config, poster, day, summary)
        summary.days.append(result)
        if result.status == SYNCED:
            summary.days_synced += 1
        if on_day is not None:
            on_day(result)

    return summary


def _sync_day(
    db_path: Path,
    config: SyncConfig,
    poster: TimeEntryPoster,
    day: date,
    summary: SyncSummary,
) -> DayResult:
    start_utc, end_utc = workday_boundaries(
        config.work_day_start, config.work_day_end, day, config.timezone
    )
    sessions = db.query_range(db_path, start_utc, end_utc)

    # Not marked synced: a later scan may still add sessions for this day.
    if not sessions:
        logger.debug("%s: no sessions in workday window", day)
        return DayResult(day=day, status=NO_SESSIONS)

    alloc_result = compute_allocations(
        sessions,
        config.project_mapping,
        config.other_project_id,
        start_utc,
        end_utc,
    )

    # TODO: decide whether an all-skipped day should be marked synced; it is left open for now.
    if not alloc_result.allocations:
        logger.info("%s: no allocations, all projects skipped: %s", day, alloc_result.skipped)
        return DayResult(day=day, status=ALL_SKIPPED, skipped_projects=alloc_result.skipped)

    result = DayResult(day=day, status=SYNCED, skipped_projects=alloc_result.skipped)

    for allocation in alloc_result.allocations:
        if db.is_entry_synced(db_path, day, config.workspace_id, allocation.project_id):
            result.entries_already_synced += 1
            continue

        try:
            entry_id = poster.post_time_entry(
                allocation.project_id,
                allocation.start,
                allocation.end,
                config.workspace_id,
            )
        except ClockifyError as e:
            raise SyncAbortedError(
                f"posting time entry for {day} project {allocation.project_id} failed: {e}",
                day=day,
                project_id=allocation.project_id,
                summary=summary,
            ) from e

        db.mark_entry_synced(db_path, day, config.workspace_id, allocation.project_id, entry_id)
        logger.debug(
            "%s: posted %s %s-%s as %s",
            day, allocation.project_id, allocation.start, allocation.end, entry_id,
        )
        result.entries_posted += 1
        summary.entries_posted += 1

    db.mark_day_synced(db_path, day, config.workspace_id)
    return result
