"""Tests for the root command group and global options."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner

from lmsctl import __version__
from lmsctl.cli import cli


@pytest.mark.usefixtures("_isolated_cwd")
class TestRoot:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_bare_invocation_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        for group in ("user", "catalog", "loan", "storage", "shell"):
            assert group in result.output

    def test_unknown_backend(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--backend", "tape", "user", "list"])
        assert result.exit_code == 2

    def test_missing_config_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["-c", str(tmp_path / "nope.toml"), "user", "list"])
        assert result.exit_code == 1
        assert "Config file not found" in result.stderr


@pytest.mark.usefixtures("_isolated_cwd")
class TestConfigFile:
    def test_backend_from_toml(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "lmsctl.toml").write_text(
            '[storage]\nbackend = "file"\ndata_dir = "books"\n', encoding="utf-8"
        )
        assert cli_runner.invoke(cli, ["user", "add", "u1", "Alice"]).exit_code == 0
        assert (tmp_path / "books" / "users.csv").is_file()

        result = cli_runner.invoke(cli, ["--json", "storage", "info"])
        data = json.loads(result.stdout)["data"]
        assert data["backend"] == "file"
        assert data["config_path"] == str((tmp_path / "lmsctl.toml").resolve())

    def test_loan_duration_from_toml(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "lmsctl.toml").write_text(
            '[storage]\nbackend = "sql"\n[loans]\ndefault_duration_days = 7\n',
            encoding="utf-8",
        )
        cli_runner.invoke(cli, ["user", "add", "u1", "Alice"])
        cli_runner.invoke(
            cli, ["catalog", "add-book", "b1", "Dune", "a1", "Herbert", "0441013597", "1965"]
        )
        result = cli_runner.invoke(cli, ["--json", "loan", "borrow", "u1", "b1"])
        loan = json.loads(result.stdout)["data"]
        loaned = datetime.strptime(loan["loan_date"][:10], "%Y-%m-%d")
        due = datetime.strptime(loan["due_date"], "%Y-%m-%d")
        assert due - loaned == timedelta(days=7)

    def test_cli_flag_beats_toml(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "lmsctl.toml").write_text('[storage]\nbackend = "file"\n', encoding="utf-8")
        result = cli_runner.invoke(cli, ["--backend", "memory", "--json", "storage", "info"])
        assert json.loads(result.stdout)["data"]["backend"] == "memory"


@pytest.mark.usefixtures("_isolated_cwd")
class TestLogging:
    def test_verbose_logs_to_stderr(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "--log-json", "--json", "user", "list"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["ok"] is True
        events = [json.loads(line) for line in result.stderr.splitlines() if line.startswith("{")]
        assert any(e["event"] == "Opening memory backend" for e in events)
