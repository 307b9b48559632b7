"""Tests for the data-scaffolder CLI."""

import json
from pathlib import Path

import psycopg
from click.testing import CliRunner

from data_scaffolder import cli as cli_module
from data_scaffolder.cli import cli
from data_scaffolder.core.models import DataSource
from data_scaffolder.scaffolder import scaffold


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "version" in result.output


def test_scaffold_command(project_dir: Path, fake_db, monkeypatch):
    """Scaffold echoes progress and the written file."""
    calls = {}

    def fake_scaffold(settings_file, **kwargs):
        calls.update(kwargs)
        return scaffold(settings_file, connect=fake_db.connect, **kwargs)

    monkeypatch.setattr(cli_module, "run_scaffold", fake_scaffold)

    result = CliRunner().invoke(
        cli, ["scaffold", str(project_dir / "appsettings.json"), "--raw-literals"]
    )

    assert result.exit_code == 0, result.output
    assert "Scaffolding Default:public.person (2 rows)" in result.output
    assert "Scaffolded 2 tables" in result.output
    assert calls["config"].output.escape_literals is False
    assert (project_dir / "Models" / "DataFactory.cs").exists()


def test_scaffold_command_error(tmp_path: Path):
    settings = tmp_path / "appsettings.json"
    settings.write_text(json.dumps({"ConnectionStrings": {"123": "postgresql:///x"}}))

    result = CliRunner().invoke(cli, ["scaffold", str(settings)])

    assert result.exit_code == 1
    assert "cannot be transformed into a valid class name" in result.output


def test_scaffold_command_missing_file(tmp_path: Path):
    result = CliRunner().invoke(cli, ["scaffold", str(tmp_path / "appsettings.json")])

    assert result.exit_code != 0


def _refuse(source: DataSource):
    raise psycopg.OperationalError(f"connection to {source.conninfo} failed: Connection refused")


def test_scaffold_command_unreachable_database(project_dir: Path, monkeypatch):
    """Connection failures end with a message and exit code 1, not a traceback."""
    monkeypatch.setattr(DataSource, "connect", _refuse)

    result = CliRunner().invoke(cli, ["scaffold", str(project_dir / "appsettings.json")])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Could not read schema metadata for data source 'Default'" in result.output


def test_tables_command(project_dir: Path, fake_db, monkeypatch):
    monkeypatch.setattr(DataSource, "connect", lambda source: fake_db.connect(source))

    result = CliRunner().invoke(cli, ["tables", str(project_dir / "appsettings.json")])

    assert result.exit_code == 0, result.output
    assert "Default:" in result.output
    assert "  public.person (5 columns)" in result.output


def test_tables_command_unreachable_database(project_dir: Path, monkeypatch):
    monkeypatch.setattr(DataSource, "connect", _refuse)

    result = CliRunner().invoke(cli, ["tables", str(project_dir / "appsettings.json")])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Connection refused" in result.output
