"""Shared test fixtures for claude-tracker tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from claude_tracker.db import init_db
from claude_tracker.models import Session

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_session(
    start="2026-02-04T10:00:00Z",
    end="2026-02-04T10:30:00Z",
    duration=1800,
    project="/work/test",
    **tokens,
):
    """Helper to build a Session from ISO strings with sensible defaults."""
    return Session(
        start=utc(start),
        end=utc(end),
        active_duration_seconds=duration,
        project=project,
        **tokens,
    )


def utc(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace("Z", "+00:00")).astimezone(timezone.utc)


@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_jsonl():
    """Path to sample JSONL file (one /work/alpha session with a 32m idle gap)."""
    return FIXTURES_DIR / "sample.jsonl"


@pytest.fixture
def no_cwd_jsonl():
    """Path to a JSONL file whose first event has no cwd."""
    return FIXTURES_DIR / "no_cwd.jsonl"


@pytest.fixture
def tmp_db(tmp_path):
    """Path to a temporary SQLite database file."""
    return tmp_path / "test-tracker.db"


@pytest.fixture
def db(tmp_db):
    """An initialized temporary database."""
    init_db(tmp_db)
    return tmp_db
