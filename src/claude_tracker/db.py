"""SQLite database layer — stores sessions and sync bookkeeping."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path

from claude_tracker.models import DayStatus, Session

# Fixed-width UTC format so string comparison in SQL matches time order.
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    source_path TEXT PRIMARY KEY,
    project TEXT NOT NULL,
    date TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    duration_seconds INTEGER NOT NULL,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    cache_creation_input_tokens INTEGER NOT NULL DEFAULT 0,
    cache_read_input_tokens INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_sessions_start ON sessions (start_time);
CREATE INDEX IF NOT EXISTS idx_sessions_date ON sessions (date);

CREATE TABLE IF NOT EXISTS ingest_log (
    source_file TEXT PRIMARY KEY,
    file_size INTEGER,
    file_mtime REAL,
    ingested_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS sync_days (
    date TEXT NOT NULL,
    workspace_id TEXT NOT NULL,
    status TEXT NOT NULL,
    synced_at TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (date, workspace_id)
);

CREATE TABLE IF NOT EXISTS sync_entries (
    date TEXT NOT NULL,
    workspace_id TEXT NOT NULL,
    project_id TEXT NOT NULL,
    entry_id TEXT NOT NULL,
    synced_at TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (date, workspace_id, project_id)
);
"""


def init_db(db_path: Path) -> None:
    """Create tables if they don't exist."""
    con = sqlite3.connect(db_path)
    try:
        con.execute("PRAGMA journal_mode=WAL")
        con.executescript(_SCHEMA)
        con.commit()
    finally:
        con.close()


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get a connection with row_factory = sqlite3.Row."""
    con = sqlite3.connect(db_path)
    con.row_factory = sqlite3.Row
    return con


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _parse_stored_timestamp(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        start=_parse_stored_timestamp(row["start_time"]),
        end=_parse_stored_timestamp(row["end_time"]),
        active_duration_seconds=row["duration_seconds"],
        project=row["project"],
        input_tokens=row["input_tokens"],
        output_tokens=row["output_tokens"],
        cache_creation_input_tokens=row["cache_creation_input_tokens"],
        cache_read_input_tokens=row["cache_read_input_tokens"],
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def upsert_session(db_path: Path, source_path: str, session: Session) -> None:
    """Insert or replace the session for a source file.

    The stored date is the local calendar date of the session start.
    """
    session_date = session.start.astimezone().date().isoformat()
    con = get_connection(db_path)
    try:
        con.execute(
            """INSERT OR REPLACE INTO sessions (
                source_path, project, date, start_time, end_time,
                duration_seconds, input_tokens, output_tokens,
                cache_creation_input_tokens, cache_read_input_tokens
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                source_path,
                session.project,
                session_date,
                format_timestamp(session.start),
                format_timestamp(session.end),
                session.active_duration_seconds,
                session.input_tokens,
                session.output_tokens,
                session.cache_creation_input_tokens,
                session.cache_read_input_tokens,
            ),
        )
        con.commit()
    finally:
        con.close()


def query_range(db_path: Path, range_start: datetime, range_end: datetime) -> list[Session]:
    """Return sessions whose [start, end) interval intersects [range_start, range_end).

    A session straddling a boundary shows up in the queries for both sides.
    """
    con = get_connection(db_path)
    try:
        rows = con.execute(
            """SELECT * FROM sessions
            WHERE start_time < ? AND end_time >= ?
            ORDER BY start_time, source_path""",
            (format_timestamp(range_end), format_timestamp(range_start)),
        ).fetchall()
        return [_row_to_session(r) for r in rows]
    finally:
        con.close()


def get_sessions_for_date(db_path: Path, day: date) -> list[Session]:
    """Sessions whose stored (local start) date is the given day."""
    con = get_connection(db_path)
    try:
        rows = con.execute(
            "SELECT * FROM sessions WHERE date = ? ORDER BY start_time",
            (day.isoformat(),),
        ).fetchall()
        return [_row_to_session(r) for r in rows]
    finally:
        con.close()


def earliest_session_date(db_path: Path, tz: tzinfo | None = None) -> date | None:
    """Date of the earliest stored session start in ``tz``, or None if empty.

    ``tz`` defaults to the system local zone.
    """
    con = get_connection(db_path)
    try:
        row = con.execute("SELECT MIN(start_time) AS earliest FROM sessions").fetchone()
        if row is None or row["earliest"] is None:
            return None
        return _parse_stored_timestamp(row["earliest"]).astimezone(tz).date()
    finally:
        con.close()


# ---------------------------------------------------------------------------
# Incremental scan bookkeeping
# ---------------------------------------------------------------------------


def log_ingestion(db_path: Path, source_file: str, file_size: int, file_mtime: float) -> None:
    """Record a file in the ingest_log. INSERT OR REPLACE on source_file."""
    con = get_connection(db_path)
    try:
        con.execute(
            """INSERT OR REPLACE INTO ingest_log (source_file, file_size, file_mtime)
            VALUES (?, ?, ?)""",
            (source_file, file_size, file_mtime),
        )
        con.commit()
    finally:
        con.close()


def get_ingested_file(db_path: Path, source_file: str) -> dict | None:
    """Check if a file has been ingested.

    Returns {source_file, file_size, file_mtime} or None.
    """
    con = get_connection(db_path)
    try:
        row = con.execute(
            "SELECT source_file, file_size, file_mtime FROM ingest_log WHERE source_file = ?",
            (source_file,),
        ).fetchone()
        if row is None:
            return None
        return dict(row)
    finally:
        con.close()


# ---------------------------------------------------------------------------
# Sync state
# ---------------------------------------------------------------------------


def get_day_status(db_path: Path, day: date, workspace_id: str) -> DayStatus | None:
    con = get_connection(db_path)
    try:
        row = con.execute(
            "SELECT status FROM sync_days WHERE date = ? AND workspace_id = ?",
            (day.isoformat(), workspace_id),
        ).fetchone()
        if row is None:
            return None
        return DayStatus(row["status"])
    finally:
        con.close()


def is_day_synced(db_path: Path, day: date, workspace_id: str) -> bool:
    return get_day_status(db_path, day, workspace_id) is DayStatus.COMPLETE


def mark_day_synced(db_path: Path, day: date, workspace_id: str) -> None:
    """Record a day as fully synced. Raises sqlite3.IntegrityError if already marked."""
    con = get_connection(db_path)
    try:
        con.execute(
            "INSERT INTO sync_days (date, workspace_id, status) VALUES (?, ?, ?)",
            (day.isoformat(), workspace_id, DayStatus.COMPLETE.value),
        )
        con.commit()
    finally:
        con.close()


def get_entry_id(db_path: Path, day: date, workspace_id: str, project_id: str) -> str | None:
    """External entry id recorded for (day, workspace, project), if any."""
    con = get_connection(db_path)
    try:
        row = con.execute(
            """SELECT entry_id FROM sync_entries
            WHERE date = ? AND workspace_id = ? AND project_id = ?""",
            (day.isoformat(), workspace_id, project_id),
        ).fetchone()
        if row is None:
            return None
        return row["entry_id"]
    finally:
        con.close()


def is_entry_synced(db_path: Path, day: date, workspace_id: str, project_id: str) -> bool:
    return get_entry_id(db_path, day, workspace_id, project_id) is not None


def mark_entry_synced(
    db_path: Path,
    day: date,
    workspace_id: str,
    project_id: str,
    entry_id: str,
) -> None:
    """Record a posted time entry. Raises sqlite3.IntegrityError if already marked."""
    con = get_connection(db_path)
    try:
        con.execute(
            """INSERT INTO sync_entries (date, workspace_id, project_id, entry_id)
            VALUES (?, ?, ?, ?)""",
            (day.isoformat(), workspace_id, project_id, entry_id),
        )
        con.commit()
    finally:
        con.close()
