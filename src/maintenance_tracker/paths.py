"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "MaintenanceTracker"
APP_AUTHOR = "MaintenanceTracker"


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)


def get_data_dir() -> Path:
    """Return the base directory for the activity database."""
    path = Path(_dirs().user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_imports_dir() -> Path:
    """Directory holding a copy of every imported spreadsheet, one per batch."""
    path = get_data_dir() / "imports"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_dir() -> Path:
    path = Path(_dirs().user_log_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    return get_data_dir() / "activities.sqlite3"


def get_log_path() -> Path:
    return get_log_dir() / "tracker.log"


def batch_file_path(batch_id: str, suffix: str = ".xlsx") -> Path:
    return get_imports_dir() / f"{batch_id}{suffix}"
