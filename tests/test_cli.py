"""Tests for cli.py - flag handling and the non-interactive modes."""

import json
from pathlib import Path

import pytest

from todoterm import __version__
from todoterm.cli import build_parser, main
from todoterm.storage import SQLiteStorage

LEGACY_DOCUMENT = {
    "todo_lists": [
        {
            "id": "100",
            "name": "Home",
            "description": "",
            "tasks": [
                {
                    "id": "101",
                    "title": "Fix sink",
                    "description": "",
                    "completed": True,
                    "priority": 1,
                    "created_at": "2024-06-10T08:00:00Z",
                    "updated_at": "2024-06-10T08:00:00Z",
                },
                {
                    "id": "102",
                    "title": "Paint fence",
                    "description": "",
                    "completed": False,
                    "priority": 2,
                    "created_at": "2024-06-10T08:00:00Z",
                    "updated_at": "2024-06-10T08:00:00Z",
                },
            ],
            "created_at": "2024-06-10T08:00:00Z",
            "updated_at": "2024-06-10T08:00:00Z",
        }
    ],
    "settings": {"reminder_minutes": 60, "show_completed": True, "auto_save": True},
}


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert not (args.info or args.migrate or args.version)
        assert args.data_dir is None
        assert args.storage is None

    @pytest.mark.parametrize("flag,attr", [("-i", "info"), ("-m", "migrate"), ("-v", "version")])
    def test_short_flags(self, flag: str, attr: str) -> None:
        assert getattr(build_parser().parse_args([flag]), attr) is True

    def test_modes_exclusive(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["--info", "--migrate"]) == 1
        assert "not allowed with" in capsys.readouterr().err


class TestExitCodes:
    """Tests for help, version and unknown flags."""

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["--version"]) == 0
        assert f"todoterm v{__version__}" in capsys.readouterr().out

    def test_help_exits_zero(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["--help"]) == 0
        out = capsys.readouterr().out
        assert "--info" in out
        assert "--migrate" in out

    def test_unknown_flag_exits_one(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["--frobnicate"]) == 1
        assert "unrecognized arguments" in capsys.readouterr().err

    def test_bad_storage_choice(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["--storage", "redis", "--info"]) == 1
        assert "invalid choice" in capsys.readouterr().err


class TestInfo:
    """Tests for --info."""

    def test_empty_data_dir(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["--info", "--storage", "sqlite", "--data-dir", str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert f"SQLite database: {tmp_path / 'todoterm.db'}" in out
        assert "Todo Lists: 0" in out
        assert "Total Tasks: 0" in out
        assert "Completion Rate" not in out
        assert "Reminder Minutes: 60" in out

    def test_counts_after_import(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        (tmp_path / "todoterm.json").write_text(json.dumps(LEGACY_DOCUMENT))

        assert main(["-i", "--storage", "sqlite", "--data-dir", str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert "Todo Lists: 1" in out
        assert "Total Tasks: 2" in out
        assert "Completed Tasks: 1" in out
        assert "Completion Rate: 50.0%" in out

    def test_json_backend(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["--info", "--storage", "json", "--data-dir", str(tmp_path)]) == 0
        assert "JSON file:" in capsys.readouterr().out

    def test_writes_log_file(self, tmp_path: Path) -> None:
        main(["--info", "--storage", "sqlite", "--data-dir", str(tmp_path)])
        assert (tmp_path / "todoterm.log").exists()


class TestMigrate:
    """Tests for --migrate."""

    def test_without_legacy_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["--migrate", "--data-dir", str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert "nothing to migrate" in out
        assert "Migration completed successfully!" not in out

    def test_with_legacy_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        (tmp_path / "todoterm.json").write_text(json.dumps(LEGACY_DOCUMENT))

        assert main(["-m", "--data-dir", str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert "Migrated 1 lists and 2 tasks" in out
        assert "Migration completed successfully!" in out
        assert not (tmp_path / "todoterm.json").exists()
        assert list(tmp_path.glob("todoterm.json.backup.*"))

        db = SQLiteStorage(tmp_path / "todoterm.db")
        try:
            assert [l.name for l in db.load().todo_lists] == ["Home"]
        finally:
            db.close()

    def test_corrupt_legacy_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        (tmp_path / "todoterm.json").write_text("{broken")

        assert main(["--migrate", "--data-dir", str(tmp_path)]) == 1

        assert "Migration failed" in capsys.readouterr().err
        assert (tmp_path / "todoterm.json").exists()


class TestInteractiveStartup:
    """Tests for startup failures before the TUI runs."""

    @pytest.fixture(autouse=True)
    def no_tui(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from todoterm.tui.app import TodoTermApp

        def fail_run(self, *args, **kwargs):
            pytest.fail("TUI started despite a startup failure")

        monkeypatch.setattr(TodoTermApp, "run", fail_run)

    def test_corrupt_data_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        (tmp_path / "todoterm.json").write_text("{broken")

        assert main(["--data-dir", str(tmp_path), "--storage", "json"]) == 1
        assert "Failed to load data" in capsys.readouterr().err

    def test_unopenable_database(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        (tmp_path / "todoterm.db").mkdir()

        assert main(["--data-dir", str(tmp_path), "--storage", "sqlite"]) == 1
        assert "Failed to initialize application" in capsys.readouterr().err

    def test_bad_legacy_file_blocks_startup(
        self, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        (tmp_path / "todoterm.json").write_text("[]")

        assert main(["--data-dir", str(tmp_path), "--storage", "sqlite"]) == 1
        assert "Failed to initialize application" in capsys.readouterr().err
        assert (tmp_path / "todoterm.json").exists()
