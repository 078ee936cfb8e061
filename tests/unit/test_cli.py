"""Tests for the record-keeper command-line front end."""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from record_keeper.cli import build_parser, format_records, main, resolve_settings
from record_keeper.models import Record


@pytest.fixture(params=["sqlite", "jsonl"])
def backend_args(request: pytest.FixtureRequest, tmp_path: Path) -> list[str]:
    """Global options pointing the CLI at a fresh store of each backend."""
    return ["--backend", request.param, "--path", str(tmp_path / f"cli.{request.param}")]


class TestCli:
    """Test cases for the CLI commands."""

    def test_list_empty(self, backend_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
        """Listing an empty store says so."""
        assert main([*backend_args, "list"]) == 0
        assert capsys.readouterr().out.strip() == "No records."

    def test_add_then_list(
        self, backend_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An added record shows up in a later listing."""
        assert main([*backend_args, "add", "Alice"]) == 0
        record_id = uuid.UUID(capsys.readouterr().out.strip())

        assert main([*backend_args, "list"]) == 0
        out = capsys.readouterr().out
        assert str(record_id) in out
        assert "Alice" in out

    def test_delete_by_id(
        self, backend_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Deleting by id removes the record."""
        main([*backend_args, "add", "Alice"])
        record_id = capsys.readouterr().out.strip()

        assert main([*backend_args, "delete", record_id]) == 0
        assert "Deleted" in capsys.readouterr().out

        main([*backend_args, "list"])
        assert capsys.readouterr().out.strip() == "No records."

    def test_delete_missing_id(
        self, backend_args: list[str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Deleting an unknown id succeeds with a notice."""
        missing = uuid.uuid4()
        assert main([*backend_args, "delete", str(missing)]) == 0
        assert "nothing deleted" in capsys.readouterr().out

    def test_store_error_exit_code(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A store failure is reported on stderr with exit code 1."""
        bad_path = tmp_path / "missing" / "records.db"
        assert main(["--path", str(bad_path), "list"]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_invalid_id_rejected(self, capsys: pytest.CaptureFixture[str]) -> None:
        """A malformed id is an argument error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["delete", "not-a-uuid"])
        assert exc_info.value.code == 2


class TestResolveSettings:
    """Test cases for merging CLI options with the environment."""

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Command-line options take precedence over the environment."""
        monkeypatch.setenv("RECORD_KEEPER_BACKEND", "sqlite")
        monkeypatch.setenv("RECORD_KEEPER_PATH", str(tmp_path / "env.db"))
        args = build_parser().parse_args(["--path", str(tmp_path / "cli.db"), "list"])

        settings = resolve_settings(args)

        assert settings.backend == "sqlite"
        assert settings.resolved_path == tmp_path / "cli.db"

    def test_env_path_ignored_for_other_backend(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """An environment path for one backend is not reused for another."""
        monkeypatch.setenv("RECORD_KEEPER_PATH", str(tmp_path / "env.db"))
        args = build_parser().parse_args(["--backend", "jsonl", "list"])

        assert resolve_settings(args).resolved_path == Path("records.jsonl")


def test_format_records() -> None:
    """Records render one per line with their index."""
    record_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
    text = format_records([Record(record_id, "Alice")])
    assert text == "  0  12345678-1234-5678-1234-567812345678  Alice"
