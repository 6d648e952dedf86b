"""
Structured single-file backend.

The whole Application lives in one JSON document. Each mutation is staged on
a copy of the snapshot, written to disk, and only then copied back into the
caller's snapshot, so a failed write leaves both sides unchanged.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from jsonschema import SchemaError, ValidationError, validate

from todoterm.models import Application, Priority, generate_id, now_local
from todoterm.storage import base
from todoterm.storage.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"
SCHEMA_NAME = "application"


def validate_document(data: dict, schema_name: str = SCHEMA_NAME) -> tuple[bool, str]:
    """Validate a data document against a bundled schema. Returns (valid, error_message)."""
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return False, f"Schema not found: {schema_path}"

    try:
        schema = json.loads(schema_path.read_text())
        validate(instance=data, schema=schema)
        return True, ""
    except SchemaError as e:
        return False, f"Invalid schema: {e.message}"
    except ValidationError as e:
        path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
        return False, f"Validation error at '{path}': {e.message}"


def read_document(path: Path) -> dict:
    """Read and validate a data document, raising StorageError on any fault."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StorageError(f"failed to read data file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StorageError(f"failed to parse data file {path}: {e}") from e

    valid, message = validate_document(data)
    if not valid:
        raise StorageError(f"corrupt data file {path}: {message}")
    return data


class JsonFileStorage:
    """StorageGateway implementation backed by a single JSON file."""

    def __init__(self, path: Path):
        self.data_path = Path(path)
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create data directory: {e}") from e

    def describe(self) -> str:
        return f"JSON file: {self.data_path}"

    def load(self) -> Application:
        if not self.data_path.exists():
            logger.info("No data file at %s, starting empty", self.data_path)
            return Application()
        return Application.from_dict(read_document(self.data_path))

    def save(self, app: Application) -> None:
        payload = json.dumps(app.to_dict(), indent=2)

        if self.data_path.exists():
            backup_path = self.data_path.with_name(self.data_path.name + ".backup")
            try:
                shutil.copyfile(self.data_path, backup_path)
            except OSError as e:
                logger.warning("Failed to create backup %s: %s", backup_path, e)

        tmp_path = self.data_path.with_name(self.data_path.name + ".tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.data_path)
        except OSError as e:
            raise StorageError(f"failed to write data file {self.data_path}: {e}") from e
        logger.debug("Saved %d lists to %s", len(app.todo_lists), self.data_path)

    @contextmanager
    def _staged(self, app: Application) -> Iterator[Application]:
        """Yield a copy of ``app``; persist it and adopt it on clean exit."""
        staged = copy.deepcopy(app)
        yield staged
        self.save(staged)
        app.todo_lists = staged.todo_lists
        app.settings = staged.settings

    def create_list(self, app: Application, name: str, description: str) -> str:
        base.require_text(name, "list name")
        list_id = generate_id()
        with self._staged(app) as staged:
            base.apply_create_list(staged, list_id, name, description, now_local())
        return list_id

    def update_list(self, app: Application, list_id: str, name: str, description: str) -> None:
        base.require_text(name, "list name")
        with self._staged(app) as staged:
            base.apply_update_list(staged, list_id, name, description, now_local())

    def delete_list(self, app: Application, list_id: str) -> None:
        with self._staged(app) as staged:
            base.apply_delete_list(staged, list_id)

    def create_task(
        self,
        app: Application,
        list_id: str,
        title: str,
        description: str,
        priority: Priority,
        deadline: datetime | None,
    ) -> str:
        base.require_text(title, "task title")
        task_id = generate_id()
        with self._staged(app) as staged:
            base.apply_create_task(
                staged, list_id, task_id, title, description, priority, deadline, now_local()
            )
        return task_id

    def update_task(
        self,
        app: Application,
        list_id: str,
        task_id: str,
        title: str,
        description: str,
        priority: Priority,
        deadline: datetime | None,
    ) -> None:
        base.require_text(title, "task title")
        with self._staged(app) as staged:
            base.apply_update_task(
                staged, list_id, task_id, title, description, priority, deadline, now_local()
            )

    def toggle_task(self, app: Application, list_id: str, task_id: str) -> None:
        with self._staged(app) as staged:
            task = base.get_task(staged, list_id, task_id)
            base.apply_set_completed(staged, list_id, task_id, not task.completed, now_local())

    def delete_task(self, app: Application, list_id: str, task_id: str) -> None:
        with self._staged(app) as staged:
            base.apply_delete_task(staged, list_id, task_id, now_local())

    def close(self) -> None:
        pass
