"""JSONL parser — reads Claude Code session logs into Events and assembles Sessions."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from pathlib import Path

from claude_tracker.models import Event, Session, TokenUsage

logger = logging.getLogger(__name__)

# Only these line types represent activity; everything else is bookkeeping.
ACTIVITY_TYPES = ("user", "assistant")


def parse_event(line: str) -> Event | None:
    """Parse a single JSONL line into an Event.

    Returns None for non-user/assistant lines, lines without a usable
    timestamp, and anything that isn't valid JSON.
    """
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    if data.get("type") not in ACTIVITY_TYPES:
        return None

    timestamp = _parse_timestamp(data.get("timestamp"))
    if timestamp is None:
        return None

    cwd = data.get("cwd")
    directory = cwd if isinstance(cwd, str) else None

    token_usage = None
    message_data = data.get("message")
    if isinstance(message_data, dict):
        usage = message_data.get("usage")
        if isinstance(usage, dict):
            token_usage = TokenUsage(
                input_tokens=_count(usage.get("input_tokens")),
                output_tokens=_count(usage.get("output_tokens")),
                cache_creation_input_tokens=_count(
                    usage.get("cache_creation_input_tokens")
                ),
                cache_read_input_tokens=_count(usage.get("cache_read_input_tokens")),
            )

    return Event(timestamp=timestamp, directory=directory, token_usage=token_usage)


def parse_jsonl_file(file_path: Path) -> list[Event]:
    """Read a transcript file into an ordered list of Events.

    File order is kept as-is; it is the authoritative temporal order.
    """
    events: list[Event] = []
    dropped = 0
    with open(file_path, encoding="utf-8", errors="replace") as f:
        for line in f:
            event = parse_event(line)
            if event is None:
                dropped += 1
                continue
            events.append(event)
    if dropped:
        logger.debug("%s: ignored %d non-activity lines", file_path, dropped)
    return events


def assemble_session(events: list[Event], idle_timeout: timedelta) -> Session | None:
    """Assemble one file's events into a Session.

    Gaps between consecutive events count toward the active duration only
    when shorter than idle_timeout. Returns None for an empty event list.
    """
    if not events:
        return None

    active = timedelta(0)
    for prev, cur in zip(events, events[1:]):
        gap = cur.timestamp - prev.timestamp
        if gap < idle_timeout:
            active += gap

    project = next((e.directory for e in events if e.directory), "")

    usages = [e.token_usage for e in events if e.token_usage is not None]

    return Session(
        start=events[0].timestamp,
        end=events[-1].timestamp,
        active_duration_seconds=int(active.total_seconds()),
        project=project,
        input_tokens=sum(u.input_tokens for u in usages),
        output_tokens=sum(u.output_tokens for u in usages),
        cache_creation_input_tokens=sum(u.cache_creation_input_tokens for u in usages),
        cache_read_input_tokens=sum(u.cache_read_input_tokens for u in usages),
    )


def discover_session_files(projects_dir: Path) -> list[Path]:
    """Find session JSONL files under a Claude projects directory.

    Only looks one level deep (projects_dir/<project>/<session>.jsonl) and
    skips agent-* sidechain logs.
    """
    projects_dir = Path(projects_dir)
    results: list[Path] = []
    if not projects_dir.is_dir():
        return results

    for project_dir in projects_dir.iterdir():
        if not project_dir.is_dir():
            continue
        for file_path in project_dir.iterdir():
            if not file_path.is_file():
                continue
            name = file_path.name
            if name.endswith(".jsonl") and not name.startswith("agent-"):
                results.append(file_path)

    results.sort()
    return results


def is_on_date(session: Session, day: date, tz: tzinfo | None = None) -> bool:
    """True if the session has any activity on the given local calendar date."""
    start_date = session.start.astimezone(tz).date()
    end_date = session.end.astimezone(tz).date()
    return start_date == day or end_date == day


def _parse_timestamp(ts: object) -> datetime | None:
    """Parse an ISO 8601 timestamp string into an aware datetime."""
    if not isinstance(ts, str) or not ts:
        return None
    # Handle Z suffix
    ts = ts.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _count(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value
