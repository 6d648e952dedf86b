"""
Persistence gateway: contract, backends and the backend factory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from todoterm import config
from todoterm.storage.base import StorageGateway
from todoterm.storage.errors import MigrationError, NotFoundError, StorageError
from todoterm.storage.json_store import JsonFileStorage
from todoterm.storage.migration import MigrationReport, migrate_from_json
from todoterm.storage.sqlite_store import SQLiteStorage

logger = logging.getLogger(__name__)

__all__ = [
    "JsonFileStorage",
    "MigrationError",
    "MigrationReport",
    "NotFoundError",
    "SQLiteStorage",
    "StorageError",
    "StorageGateway",
    "migrate_from_json",
    "open_storage",
]


def open_storage(backend: str | None = None, data_dir: Path | None = None) -> StorageGateway:
    """Build the configured backend.

    The database backend imports any legacy JSON file on first open.
    Raises StorageError (MigrationError for a failed import) if the store
    cannot be opened.
    """
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend not in config.STORAGE_BACKENDS:
        raise StorageError(
            f"unknown storage backend {backend!r} (expected one of: {', '.join(config.STORAGE_BACKENDS)})"
        )

    try:
        directory = config.data_dir(data_dir)
    except OSError as e:
        raise StorageError(f"failed to create data directory: {e}") from e

    if backend == "json":
        storage: StorageGateway = JsonFileStorage(directory / config.LEGACY_FILE_NAME)
    else:
        db = SQLiteStorage(directory / config.DATABASE_NAME)
        try:
            report = migrate_from_json(db, directory / config.LEGACY_FILE_NAME)
        except MigrationError:
            db.close()
            raise
        for warning in report.warnings:
            logger.warning(warning)
        storage = db

    logger.info("Opened %s", storage.describe())
    return storage
