"""Tests for the root CLI group."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from grayctl import __version__
from grayctl.cli import cli


class TestCli:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_subcommand_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        for name in ("domains", "override", "resolve", "sweep", "serve"):
            assert name in result.output

    def test_help_does_not_create_state(
        self, cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        cli_runner.invoke(cli, ["override", "--help"])
        assert not (tmp_path / ".grayctl").exists()

    @pytest.mark.parametrize(
        "args",
        [
            ["domains", "--examples"],
            ["domains", "add", "--examples"],
            ["override", "set", "--examples"],
            ["resolve", "--examples"],
            ["serve", "--examples"],
        ],
    )
    def test_examples(self, cli_runner: CliRunner, args: list[str]) -> None:
        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 0
        assert "Examples for" in result.output
        assert "grayctl" in result.output
