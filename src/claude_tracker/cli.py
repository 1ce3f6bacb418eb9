"""CLI entrypoint — claude-tracker scan, today, sync, setup, projects."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import click

from claude_tracker.allocation import WorkdayBoundaryError
from claude_tracker.clockify import ClockifyClient, ClockifyError
from claude_tracker.config import ConfigError, load_config
from claude_tracker.credentials import CLOCKIFY_API_KEY, SecretNotFoundError, store_secret
from claude_tracker.db import (
    get_ingested_file,
    get_sessions_for_date,
    init_db,
    log_ingestion,
    upsert_session,
)
from claude_tracker.parser import (
    assemble_session,
    discover_session_files,
    is_on_date,
    parse_jsonl_file,
)
from claude_tracker.sync import ALL_SKIPPED, SYNCED, DayResult, SyncAbortedError, run_sync


def _load_config_or_exit():
    try:
        return load_config()
    except ConfigError as e:
        click.echo(f"Invalid config: {e}", err=True)
        raise SystemExit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """claude-tracker — turn Claude Code sessions into Clockify time entries."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--full", is_flag=True, help="Re-parse all files, including unchanged ones.")
def scan(full: bool):
    """Parse Claude Code JSONL logs into SQLite sessions."""
    config = _load_config_or_exit()
    db_path = config.db_path
    log_dir = config.log_dir

    init_db(db_path)

    session_files = discover_session_files(log_dir)
    if not session_files:
        click.echo(f"No session files found in {log_dir}")
        return

    stored = 0
    skipped = 0

    for file_path in session_files:
        file_key = str(file_path)
        file_stat = file_path.stat()

        # Incremental: skip unchanged files unless --full
        if not full:
            existing = get_ingested_file(db_path, file_key)
            if existing and existing["file_mtime"] == file_stat.st_mtime:
                skipped += 1
                continue

        events = parse_jsonl_file(file_path)
        session = assemble_session(events, config.idle_timeout)
        if session is not None:
            upsert_session(db_path, file_key, session)
            stored += 1
        log_ingestion(db_path, file_key, file_stat.st_size, file_stat.st_mtime)

    click.echo(f"Stored {stored} sessions from {len(session_files) - skipped} files.")
    if skipped:
        click.echo(f"Skipped {skipped} unchanged files.")


@cli.command()
def today():
    """List today's sessions and their active time."""
    config = _load_config_or_exit()
    db_path = config.db_path

    if not db_path.exists():
        click.echo("No data yet. Run 'claude-tracker scan' first.")
        return

    init_db(db_path)
    day = date.today()
    # Sessions that started yesterday but ran past midnight count too.
    candidates = get_sessions_for_date(db_path, day) + [
        s for s in get_sessions_for_date(db_path, day - timedelta(days=1))
        if is_on_date(s, day)
    ]
    sessions = sorted(candidates, key=lambda s: s.start)

    if not sessions:
        click.echo("No sessions today.")
        return

    click.echo(f"Sessions for {day}:")
    total_secs = 0
    for s in sessions:
        total_secs += s.active_duration_seconds
        click.echo(
            f"  {s.project or '(unknown)'}  {s.active_duration_seconds // 60}m  "
            f"({s.start.astimezone():%H:%M}–{s.end.astimezone():%H:%M})"
        )
    click.echo(f"Total: {total_secs // 60}m across {len(sessions)} session(s)")


def _echo_day(result: DayResult) -> None:
    if result.status == SYNCED:
        line = f"  {result.day} - {result.entries_posted} entries posted"
        if result.entries_already_synced:
            line += f" ({result.entries_already_synced} already synced)"
        click.echo(line)
    elif result.status == ALL_SKIPPED:
        click.echo(f"  {result.day} - no allocations (all projects skipped)")
    if result.skipped_projects:
        click.echo(f"    unmapped: {', '.join(p or '(unknown)' for p in result.skipped_projects)}")


@cli.command()
def sync():
    """Post completed workdays to Clockify."""
    config = _load_config_or_exit()
    if config.sync is None:
        click.echo("Sync is not configured. Add a 'sync' section to the config file.", err=True)
        raise SystemExit(1)
    if not config.db_path.exists():
        click.echo("No data yet. Run 'claude-tracker scan' first.")
        return

    init_db(config.db_path)

    try:
        client = ClockifyClient.from_keyring()
        summary = run_sync(config.db_path, config.sync, client, on_day=_echo_day)
    except SecretNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except SyncAbortedError as e:
        click.echo(f"Sync aborted: {e}", err=True)
        click.echo(
            f"Synced {e.summary.days_synced} days, {e.summary.entries_posted} total entries "
            "before the failure. Re-run 'claude-tracker sync' to resume.",
            err=True,
        )
        raise SystemExit(1)
    except WorkdayBoundaryError as e:
        click.echo(f"Error computing workday: {e}", err=True)
        raise SystemExit(1)

    if summary.start_date is None:
        click.echo("No sessions found. Nothing to sync.")
        return
    if summary.start_date > summary.end_date:
        click.echo("No complete workdays to sync.")
        return

    click.echo("---")
    click.echo(f"Synced {summary.days_synced} days, {summary.entries_posted} total entries")


@cli.command()
def setup():
    """Store the Clockify API key in the system keychain."""
    api_key = click.prompt("Clockify API key", hide_input=True).strip()
    if not api_key:
        click.echo("No API key given.", err=True)
        raise SystemExit(1)
    store_secret(CLOCKIFY_API_KEY, api_key)
    click.echo("API key stored.")


@cli.command()
def projects():
    """List Clockify projects in the configured workspace."""
    config = _load_config_or_exit()
    if config.sync is None:
        click.echo("Sync is not configured. Add a 'sync' section to the config file.", err=True)
        raise SystemExit(1)

    try:
        client = ClockifyClient.from_keyring()
        found = client.list_projects(config.sync.workspace_id)
    except (SecretNotFoundError, ClockifyError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not found:
        click.echo("No projects in this workspace.")
        return

    for p in sorted(found, key=lambda p: (p.archived, p.name.lower())):
        suffix = "  (archived)" if p.archived else ""
        click.echo(f"  {p.id}  {p.name}{suffix}")
