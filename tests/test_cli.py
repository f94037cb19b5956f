"""Tests for the clawty command line."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from clawty import __version__
from clawty.cli import app
from clawty.exceptions import ConfigError

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("")
    return path


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"clawty version {__version__}" in result.output

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--contact" in result.output


class TestConfigErrors:
    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_permission_mode(self, config_file):
        result = runner.invoke(
            app, ["--config", str(config_file), "-c", "me", "--permission-mode", "yolo"]
        )
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "permission_mode" in result.output

    def test_missing_working_directory(self, config_file, tmp_path):
        missing = tmp_path / "does-not-exist"
        result = runner.invoke(app, ["--config", str(config_file), "-c", "me", "-d", str(missing)])
        assert result.exit_code == 1
        assert "Working directory does not exist" in result.output

    def test_empty_contact_prompt(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file)], input="\n")
        assert result.exit_code == 1
        assert "No contact provided" in result.output


class TestRun:
    def test_flags_reach_the_bridge(self, config_file, tmp_path):
        with patch("clawty.cli._run_bridge", new_callable=AsyncMock) as run_bridge:
            result = runner.invoke(
                app,
                [
                    "--config", str(config_file),
                    "-c", "+15551234567",
                    "-d", str(tmp_path),
                    "-m", "opus",
                    "-i", "500",
                ],
            )
        assert result.exit_code == 0, result.output
        config = run_bridge.call_args.args[0]
        assert config.contact == "+15551234567"
        assert config.working_dir == str(tmp_path.resolve())
        assert config.model == "opus"
        assert config.interval == 0.5

    def test_contact_from_prompt(self, config_file, tmp_path):
        with patch("clawty.cli._run_bridge", new_callable=AsyncMock) as run_bridge:
            result = runner.invoke(
                app, ["--config", str(config_file), "-d", str(tmp_path)], input="me@example.com\n"
            )
        assert result.exit_code == 0, result.output
        assert run_bridge.call_args.args[0].contact == "me@example.com"

    def test_config_file_values_are_used(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(f'contact = "file-contact"\nworking_dir = "{tmp_path.as_posix()}"\n')
        with patch("clawty.cli._run_bridge", new_callable=AsyncMock) as run_bridge:
            result = runner.invoke(app, ["--config", str(path), "-m", "haiku"])
        assert result.exit_code == 0, result.output
        config = run_bridge.call_args.args[0]
        assert config.contact == "file-contact"
        assert config.model == "haiku"

    def test_startup_error_is_reported(self, config_file, tmp_path):
        with patch(
            "clawty.cli._run_bridge",
            new_callable=AsyncMock,
            side_effect=ConfigError("Claude Code CLI not found."),
        ):
            result = runner.invoke(app, ["--config", str(config_file), "-c", "me", "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "Claude Code CLI not found." in result.output
