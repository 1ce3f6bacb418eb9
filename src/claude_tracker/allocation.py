"""Allocation engine — spreads a day's tracked time across the workday window.

Tracked seconds are bucketed per Clockify project, and each bucket gets a
share of the configured workday proportional to its share of the tracked
total. Blocks are laid out back to back from the workday start so the day is
covered exactly, with no gaps or overlaps.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from claude_tracker.config import SyncConfig
from claude_tracker.models import Allocation, AllocationResult, Session


class WorkdayBoundaryError(ValueError):
    """A workday boundary could not be turned into a single UTC instant."""


def compute_allocations(
    sessions: list[Session],
    project_mapping: dict[str, str],
    other_project_id: str | None,
    work_day_start: datetime,
    work_day_end: datetime,
) -> AllocationResult:
    """Turn one day's sessions into contiguous allocations covering the workday.

    Pure: operates on pre-converted UTC boundaries, so the output depends only
    on the arguments. Unmapped projects go to other_project_id when set, and
    are reported in ``skipped`` (and excluded) when it isn't.
    """
    if work_day_end <= work_day_start:
        raise ValueError("work_day_end must be after work_day_start")

    buckets: dict[str, int] = {}
    skipped: list[str] = []

    for session in sessions:
        project_id = project_mapping.get(session.project, other_project_id)
        if project_id is None:
            if session.project not in skipped:
                skipped.append(session.project)
            continue
        buckets[project_id] = buckets.get(project_id, 0) + session.active_duration_seconds

    # Zero-second buckets get no block and never absorb the remainder.
    buckets = {pid: secs for pid, secs in buckets.items() if secs > 0}
    if not buckets:
        return AllocationResult(allocations=[], skipped=skipped)

    total_seconds = sum(buckets.values())
    work_day_seconds = int((work_day_end - work_day_start).total_seconds())

    # Sorted by project id; integer floor division is floor(work * ratio) without float error.
    ordered = sorted(buckets.items())
    durations = [work_day_seconds * secs // total_seconds for _, secs in ordered]

    # Floor never over-allocates, so the remainder is non-negative.
    durations[-1] += work_day_seconds - sum(durations)

    allocations: list[Allocation] = []
    cursor = work_day_start
    for (project_id, _), seconds in zip(ordered, durations):
        end = cursor + timedelta(seconds=seconds)
        allocations.append(Allocation(project_id=project_id, start=cursor, end=end))
        cursor = end

    return AllocationResult(allocations=allocations, skipped=skipped)


def workday_boundaries(
    start: str,
    end: str,
    day: date,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """Convert local HH:MM workday boundaries on ``day`` to UTC.

    ``tz`` defaults to the system local zone. Raises WorkdayBoundaryError for
    unparseable times, local times that are ambiguous or skipped by a DST
    transition, and an end that isn't after the start.
    """
    start_utc = _to_utc(_parse_clock(start, "work_day_start"), day, tz, "work_day_start")
    end_utc = _to_utc(_parse_clock(end, "work_day_end"), day, tz, "work_day_end")
    if end_utc <= start_utc:
        raise WorkdayBoundaryError(
            f"work_day_end ({end}) must be after work_day_start ({start}) on {day}"
        )
    return start_utc, end_utc


def allocate(sessions: list[Session], config: SyncConfig, day: date) -> AllocationResult:
    """Sessions for one day + sync config + date -> allocations."""
    if not sessions:
        return AllocationResult()
    start, end = workday_boundaries(
        config.work_day_start, config.work_day_end, day, config.timezone
    )
    return compute_allocations(
        sessions,
        config.project_mapping,
        config.other_project_id,
        start,
        end,
    )


def is_weekday(day: date) -> bool:
    """Check if a date is a weekday (Mon-Fri)."""
    return day.weekday() < 5


def _parse_clock(value: str, setting: str) -> time:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError) as e:
        raise WorkdayBoundaryError(f"parsing {setting} {value!r}: expected HH:MM") from e


def _to_utc(clock: time, day: date, tz: tzinfo | None, setting: str) -> datetime:
    naive = datetime.combine(day, clock)
    if tz is None:
        # Naive astimezone() resolves against the system zone and honours fold.
        first = naive.astimezone()
        second = naive.replace(fold=1).astimezone()
    else:
        first = naive.replace(tzinfo=tz)
        second = first.replace(fold=1)
    if first.utcoffset() != second.utcoffset():
        raise WorkdayBoundaryError(
            f"ambiguous or non-existent local time for {setting} on {day}"
        )
    return first.astimezone(timezone.utc)
