"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from athlete_scout import __version__
from athlete_scout.cli.main import app
from athlete_scout.cli.scout import _read_batch_file
from athlete_scout.db.engine import init_db, reset_engine
from athlete_scout.ingestion.registry import reset_default_registry

runner = CliRunner()


@pytest.fixture
def temp_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the global engine at an empty temporary database."""
    monkeypatch.setenv("DATABASE_URL", str(tmp_path / "cli.db"))
    reset_engine()
    init_db()
    yield tmp_path
    reset_engine()


@pytest.fixture(autouse=True)
def builtin_sources(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Use the built-in source definitions."""
    monkeypatch.setenv("SOURCES_CONFIG_PATH", str(tmp_path / "missing.yaml"))
    reset_default_registry()
    yield
    reset_default_registry()


class TestCli:
    """Tests for the CLI commands."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_check_config(self) -> None:
        result = runner.invoke(app, ["check-config"])
        assert result.exit_code == 0
        assert "Enabled sources:" in result.stdout
        assert "maxpreps" in result.stdout

    def test_sources_list(self) -> None:
        result = runner.invoke(app, ["sources", "list"])
        assert result.exit_code == 0
        assert "Sources" in result.stdout
        assert "maxpreps" in result.stdout

    def test_sources_show_unknown(self) -> None:
        result = runner.invoke(app, ["sources", "show", "nope"])
        assert result.exit_code == 1

    def test_sources_adapters(self) -> None:
        result = runner.invoke(app, ["sources", "adapters"])
        assert result.exit_code == 0
        assert "HudlAdapter" in result.stdout

    def test_quality_empty(self, temp_database: Path) -> None:
        result = runner.invoke(app, ["quality"])
        assert result.exit_code == 0
        assert "Total athletes: 0" in result.stdout

    def test_find_missing(self, temp_database: Path) -> None:
        result = runner.invoke(app, ["find", "John Smith"])
        assert result.exit_code == 1

    def test_export_json_to_file(self, temp_database: Path) -> None:
        output = temp_database / "export.json"
        result = runner.invoke(app, ["export", "--format", "json", "--output", str(output)])
        assert result.exit_code == 0
        assert json.loads(output.read_text())["count"] == 0

    def test_search_bad_sort(self, temp_database: Path) -> None:
        result = runner.invoke(app, ["search", "--sort", "-height"])
        assert result.exit_code == 1

    def test_scrape_invalid_name(self, temp_database: Path) -> None:
        result = runner.invoke(app, ["scrape", "1234"])
        assert result.exit_code == 1
        assert "athlete_name" in result.stdout


class TestBatchFile:
    """Tests for batch file parsing."""

    def test_text_file(self, tmp_path: Path) -> None:
        path = tmp_path / "athletes.txt"
        path.write_text("John Smith\n\n# comment\nJane Doe\n")
        assert _read_batch_file(path) == ["John Smith", "Jane Doe"]

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "athletes.json"
        path.write_text(json.dumps(["John Smith", {"name": "Jane Doe", "state": "CA"}]))
        assert _read_batch_file(path) == ["John Smith", {"name": "Jane Doe", "state": "CA"}]
