"""
Runtime configuration.

Values come from the environment once at import time; tests patch the
module constants directly.

Environment:
    TODOTERM_HOME         Data directory (default: ~/.todoterm)
    TODOTERM_STORAGE      Storage backend: sqlite (default) or json
    TODOTERM_LOG_LEVEL    Log level name (default: INFO)
"""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("TODOTERM_HOME", Path.home() / ".todoterm")).expanduser()
DATABASE_NAME = "todoterm.db"
LEGACY_FILE_NAME = "todoterm.json"
LOG_FILE_NAME = "todoterm.log"

STORAGE_BACKENDS = ("sqlite", "json")
STORAGE_BACKEND = os.environ.get("TODOTERM_STORAGE", "sqlite").lower()
LOG_LEVEL = os.environ.get("TODOTERM_LOG_LEVEL", "INFO").upper()


def data_dir(override: Path | None = None) -> Path:
    """Return the data directory, creating it if needed."""
    path = Path(override) if override is not None else DATA_DIR
    path.mkdir(parents=True, exist_ok=True)
    return path


def database_path(override: Path | None = None) -> Path:
    return data_dir(override) / DATABASE_NAME


def legacy_path(override: Path | None = None) -> Path:
    """Path of the flat JSON file (legacy import source and json backend)."""
    return data_dir(override) / LEGACY_FILE_NAME


def log_path(override: Path | None = None) -> Path:
    return data_dir(override) / LOG_FILE_NAME
