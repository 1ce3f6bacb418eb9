"""Configuration loader — reads optional YAML config and merges with defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

CONFIG_PATH = Path("~/.config/claude-tracker/config.yaml")

DEFAULTS = {
    "log_dir": "~/.claude/projects",
    "db_path": "~/.local/share/claude-tracker/tracker.db",
    "idle_timeout_minutes": 15,
}

SYNC_DEFAULTS = {
    "work_day_start": "09:00",
    "work_day_end": "17:00",
    "project_mapping": {},
    "other_project_id": None,
    "timezone": None,
}


class ConfigError(ValueError):
    """The config file is present but unusable."""


@dataclass
class SyncConfig:
    workspace_id: str
    work_day_start: str = "09:00"
    work_day_end: str = "17:00"
    project_mapping: dict[str, str] = field(default_factory=dict)
    other_project_id: str | None = None  # None disables the catch-all project
    timezone: tzinfo | None = None  # None means the system local zone


@dataclass
class TrackerConfig:
    log_dir: Path
    db_path: Path
    idle_timeout_minutes: int
    sync: SyncConfig | None = None

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(minutes=self.idle_timeout_minutes)


def load_config(config_path: Path | None = None) -> TrackerConfig:
    """Load config from ~/.config/claude-tracker/config.yaml, merged with defaults.

    Expand ~ in paths. Create parent directories for db_path if they don't exist.
    If no config file exists, return defaults (don't error). The sync section
    is optional; without it sync is disabled.
    """
    if config_path is None:
        config_path = CONFIG_PATH

    config_path = config_path.expanduser()

    merged = dict(DEFAULTS)
    user_config: dict = {}

    if config_path.is_file():
        with open(config_path) as f:
            loaded = yaml.safe_load(f)
        if isinstance(loaded, dict):
            user_config = loaded
            for key in DEFAULTS:
                if key in user_config:
                    merged[key] = user_config[key]

    log_dir = Path(merged["log_dir"]).expanduser()
    db_path = Path(merged["db_path"]).expanduser()

    try:
        idle_timeout_minutes = int(merged["idle_timeout_minutes"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"idle_timeout_minutes must be an integer: {e}") from e
    if idle_timeout_minutes <= 0:
        raise ConfigError("idle_timeout_minutes must be positive")

    db_path.parent.mkdir(parents=True, exist_ok=True)

    return TrackerConfig(
        log_dir=log_dir,
        db_path=db_path,
        idle_timeout_minutes=idle_timeout_minutes,
        sync=_load_sync_config(user_config.get("sync")),
    )


def _load_sync_config(raw: object) -> SyncConfig | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("sync must be a mapping")

    merged = dict(SYNC_DEFAULTS)
    for key in SYNC_DEFAULTS:
        if raw.get(key) is not None:
            merged[key] = raw[key]

    workspace_id = raw.get("workspace_id")
    if not workspace_id:
        raise ConfigError("sync.workspace_id is required")

    mapping = merged["project_mapping"]
    if not isinstance(mapping, dict):
        raise ConfigError("sync.project_mapping must be a mapping of directory to project id")

    tz = None
    if merged["timezone"]:
        try:
            tz = ZoneInfo(str(merged["timezone"]))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"unknown sync.timezone {merged['timezone']!r}") from e

    other = merged["other_project_id"]

    return SyncConfig(
        workspace_id=str(workspace_id),
        work_day_start=_clock_time(merged["work_day_start"]),
        work_day_end=_clock_time(merged["work_day_end"]),
        project_mapping={str(k): str(v) for k, v in mapping.items()},
        other_project_id=str(other) if other else None,
        timezone=tz,
    )


def _clock_time(value: object) -> str:
    """Normalize an HH:MM setting.

    YAML 1.1 reads an unquoted 17:00 as the base-60 integer 1020.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)
