"""Storage error taxonomy."""


class StorageError(Exception):
    """I/O failure, corrupt store, or any other backend fault."""


class NotFoundError(StorageError):
    """Unknown list or task ID."""


class MigrationError(StorageError):
    """Legacy import failed; the legacy file was left untouched."""
