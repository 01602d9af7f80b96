"""Tests for CLI main module."""

from pathlib import Path
from unittest.mock import patch

from loguru import logger
from typer.testing import CliRunner

from treegate.cli.main import app, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self, tmp_path: Path) -> None:
        """Default setup writes a timestamped file and nothing else."""
        with patch("treegate.cli.main.get_log_dir", return_value=tmp_path):
            log_file = setup_logging(verbose=False)

        assert len(logger._core.handlers) == 1
        assert log_file.parent == tmp_path
        assert log_file.name.startswith("treegate-")
        assert log_file.suffix == ".log"

    def test_setup_logging_verbose(self, tmp_path: Path) -> None:
        """Verbose mode adds a stderr handler next to the file."""
        with patch("treegate.cli.main.get_log_dir", return_value=tmp_path):
            log_file = setup_logging(verbose=True)

        assert len(logger._core.handlers) == 2
        assert log_file.parent == tmp_path

    def test_setup_logging_explicit_file(self, tmp_path: Path) -> None:
        target = tmp_path / "custom" / "run.log"
        target.parent.mkdir()

        assert setup_logging(log_file=target) == target

        logger.info("hello from the test")
        logger.remove()
        assert "hello from the test" in target.read_text()

    def test_messages_land_in_log_file(self, tmp_path: Path) -> None:
        with patch("treegate.cli.main.get_log_dir", return_value=tmp_path):
            log_file = setup_logging()

        logger.debug("debug detail {}", 42)
        logger.remove()

        assert "debug detail 42" in log_file.read_text()


class TestApp:
    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("validate", "run", "state", "tree-hash", "history"):
            assert command in result.output

    def test_history_help_lists_subcommands(self) -> None:
        result = CliRunner().invoke(app, ["history", "--help"])

        assert result.exit_code == 0
        for command in ("list", "show", "prune", "health"):
            assert command in result.output

    def test_prune_requires_a_selection(self, tmp_path: Path) -> None:
        with patch("treegate.cli.main.get_log_dir", return_value=tmp_path):
            result = CliRunner().invoke(app, ["history", "prune"])

        assert result.exit_code != 0

    def test_prune_options_are_exclusive(self, tmp_path: Path) -> None:
        with patch("treegate.cli.main.get_log_dir", return_value=tmp_path):
            result = CliRunner().invoke(app, ["history", "prune", "--all", "--older-than", "7"])

        assert result.exit_code != 0
