"""Tests for the storage gateway contract, run against every backend."""

from datetime import datetime
from pathlib import Path

import pytest

from todoterm.models import Priority, Settings
from todoterm.storage import (
    JsonFileStorage,
    NotFoundError,
    SQLiteStorage,
    StorageError,
    open_storage,
)


@pytest.fixture(params=["sqlite", "json"])
def storage(request: pytest.FixtureRequest, tmp_path: Path):
    """Each backend on a fresh data file."""
    if request.param == "sqlite":
        store = SQLiteStorage(tmp_path / "todoterm.db")
    else:
        store = JsonFileStorage(tmp_path / "todoterm.json")
    yield store
    store.close()


def reopen(store):
    """Open a second instance on the same data file."""
    return type(store)(store.data_path)


class TestLoad:
    """Tests for loading an empty store."""

    def test_empty_store_has_defaults(self, storage) -> None:
        app = storage.load()
        assert app.todo_lists == []
        assert app.settings == Settings()

    def test_describe_names_path(self, storage) -> None:
        assert str(storage.data_path) in storage.describe()


class TestListOperations:
    """Tests for list CRUD."""

    def test_create_list_updates_snapshot(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Groceries", "Weekly shop")

        assert list_id
        assert [l.id for l in app.todo_lists] == [list_id]
        assert app.todo_lists[0].name == "Groceries"
        assert app.todo_lists[0].description == "Weekly shop"

    def test_update_list(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Groceries", "")
        storage.update_list(app, list_id, "Food", "Renamed")

        reloaded = reopen(storage).load()
        assert reloaded.todo_lists[0].name == "Food"
        assert reloaded.todo_lists[0].description == "Renamed"
        assert app.todo_lists[0].name == "Food"

    def test_update_unknown_list(self, storage) -> None:
        app = storage.load()
        with pytest.raises(NotFoundError):
            storage.update_list(app, "missing", "Name", "")

    def test_delete_unknown_list(self, storage) -> None:
        app = storage.load()
        with pytest.raises(NotFoundError):
            storage.delete_list(app, "missing")

    def test_empty_name_rejected(self, storage) -> None:
        app = storage.load()
        with pytest.raises(StorageError):
            storage.create_list(app, "   ", "")
        assert app.todo_lists == []

    def test_lists_keep_insertion_order(self, storage) -> None:
        app = storage.load()
        ids = [storage.create_list(app, f"List {i}", "") for i in range(5)]

        assert [l.id for l in reopen(storage).load().todo_lists] == ids

    def test_delete_list_cascades(self, storage) -> None:
        """Test that deleting a list makes its tasks unreachable."""
        app = storage.load()
        list_id = storage.create_list(app, "Work", "")
        task_id = storage.create_task(app, list_id, "Report", "", Priority.HIGH, None)

        storage.delete_list(app, list_id)

        assert app.todo_lists == []
        assert reopen(storage).load().todo_lists == []
        with pytest.raises(NotFoundError):
            storage.toggle_task(app, list_id, task_id)


class TestTaskOperations:
    """Tests for task CRUD."""

    def test_round_trip(self, storage) -> None:
        """Test that create list + task then reload yields identical values."""
        app = storage.load()
        list_id = storage.create_list(app, "Work", "Office things")
        deadline = datetime(2024, 12, 25, 9, 0)
        task_id = storage.create_task(
            app, list_id, "Report", "Quarterly numbers", Priority.CRITICAL, deadline
        )

        reloaded = reopen(storage).load()
        assert reloaded.todo_lists == app.todo_lists

        task = reloaded.todo_lists[0].tasks[0]
        assert task.id == task_id
        assert task.title == "Report"
        assert task.description == "Quarterly numbers"
        assert task.priority is Priority.CRITICAL
        assert task.deadline == deadline
        assert task.completed is False

    def test_create_task_in_unknown_list(self, storage) -> None:
        app = storage.load()
        with pytest.raises(NotFoundError):
            storage.create_task(app, "missing", "Task", "", Priority.LOW, None)

    def test_task_ids_unique(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Bulk", "")
        ids = {storage.create_task(app, list_id, f"Task {i}", "", Priority.LOW, None) for i in range(50)}
        assert len(ids) == 50

    def test_toggle_twice_is_identity(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Work", "")
        task_id = storage.create_task(app, list_id, "Report", "", Priority.LOW, None)

        storage.toggle_task(app, list_id, task_id)
        assert app.todo_lists[0].tasks[0].completed is True
        assert reopen(storage).load().todo_lists[0].tasks[0].completed is True

        storage.toggle_task(app, list_id, task_id)
        assert app.todo_lists[0].tasks[0].completed is False
        assert reopen(storage).load().todo_lists[0].tasks[0].completed is False

    def test_update_task(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Work", "")
        task_id = storage.create_task(app, list_id, "Draft", "", Priority.LOW, None)

        storage.update_task(app, list_id, task_id, "Final", "Done", Priority.HIGH, None)

        task = reopen(storage).load().todo_lists[0].tasks[0]
        assert (task.title, task.description, task.priority) == ("Final", "Done", Priority.HIGH)

    def test_update_task_clears_deadline(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Work", "")
        task_id = storage.create_task(
            app, list_id, "Draft", "", Priority.LOW, datetime(2030, 1, 1, 8, 0)
        )

        storage.update_task(app, list_id, task_id, "Draft", "", Priority.LOW, None)

        assert reopen(storage).load().todo_lists[0].tasks[0].deadline is None

    def test_delete_task(self, storage) -> None:
        app = storage.load()
        list_id = storage.create_list(app, "Work", "")
        keep = storage.create_task(app, list_id, "Keep", "", Priority.LOW, None)
        drop = storage.create_task(app, list_id, "Drop", "", Priority.LOW, None)

        storage.delete_task(app, list_id, drop)

        assert [t.id for t in app.todo_lists[0].tasks] == [keep]
        assert [t.id for t in reopen(storage).load().todo_lists[0].tasks] == [keep]

    def test_task_in_wrong_list_not_found(self, storage) -> None:
        app = storage.load()
        first = storage.create_list(app, "First", "")
        second = storage.create_list(app, "Second", "")
        task_id = storage.create_task(app, first, "Task", "", Priority.LOW, None)

        with pytest.raises(NotFoundError):
            storage.delete_task(app, second, task_id)


class TestSettings:
    """Tests for persisting settings through save()."""

    def test_save_persists_settings(self, storage) -> None:
        app = storage.load()
        app.settings.reminder_minutes = 15
        app.settings.show_completed = False

        storage.save(app)

        assert reopen(storage).load().settings == Settings(
            reminder_minutes=15, show_completed=False
        )


class TestOpenStorage:
    """Tests for the backend factory."""

    def test_default_backend_is_sqlite(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from todoterm import config

        monkeypatch.setattr(config, "STORAGE_BACKEND", "sqlite")
        store = open_storage(data_dir=tmp_path)
        try:
            assert isinstance(store, SQLiteStorage)
            assert store.describe().startswith("SQLite database:")
            assert (tmp_path / "todoterm.db").exists()
        finally:
            store.close()

    def test_json_backend(self, tmp_path: Path) -> None:
        store = open_storage("json", tmp_path)
        assert isinstance(store, JsonFileStorage)
        assert store.describe() == f"JSON file: {tmp_path / 'todoterm.json'}"

    def test_unknown_backend(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError):
            open_storage("redis", tmp_path)

    def test_creates_data_dir(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "data"
        store = open_storage("json", target)
        assert target.is_dir()
        store.close()
