"""Tests for CLI commands."""

import asyncio
from pathlib import Path

import pytest
import yaml

from treegate.cli.commands.history import _list_history, _prune_history, _show_history
from treegate.cli.commands.run import _run_command
from treegate.cli.commands.state import _show_state
from treegate.cli.commands.tree_hash import _tree_hash
from treegate.cli.commands.validate import _validate

CONFIG = """\
validation:
  phases:
    - name: checks
      parallel: true
      steps:
        - name: lint
          command: echo linted
        - name: types
          command: echo typed
    - name: test
      steps:
        - name: unit
          command: echo tested
"""

FAILING_CONFIG = """\
validation:
  phases:
    - name: test
      steps:
        - name: unit
          command: "echo 'error: assertion failed' >&2; exit 1"
"""


async def git(cwd: Path, *args: str) -> str:
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, _ = await proc.communicate()
    return stdout.decode().strip()


def read_yaml(out: str) -> dict:
    assert out.startswith("---\n")
    return yaml.safe_load(out)


@pytest.fixture
def repo(git_repo: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (git_repo / "treegate.config.yaml").write_text(CONFIG)
    monkeypatch.chdir(git_repo)
    return git_repo


async def validate_yaml(force: bool = False) -> int:
    return await _validate(force, False, True, False, None, None, False)


class TestTreeHashCommand:
    async def test_yaml_output(
        self, git_repo: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.chdir(git_repo)

        assert await _tree_hash(True) is True

        data = read_yaml(capsys.readouterr().out)
        assert data["hash"] == await git(git_repo, "rev-parse", "HEAD^{tree}")

    async def test_outside_repository(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()
        monkeypatch.chdir(plain)

        assert await _tree_hash(False) is False


class TestValidateCommand:
    async def test_passing_validation(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await validate_yaml() == 0

        data = read_yaml(capsys.readouterr().out)
        assert data["passed"] is True
        assert [phase["name"] for phase in data["phases"]] == ["checks", "test"]

    async def test_second_run_is_cached(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        await validate_yaml()
        capsys.readouterr()

        assert await validate_yaml() == 0

        assert read_yaml(capsys.readouterr().out)["is_cached_result"] is True

    async def test_force_reruns(self, repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        await validate_yaml()
        capsys.readouterr()

        assert await validate_yaml(force=True) == 0

        assert "is_cached_result" not in read_yaml(capsys.readouterr().out)

    async def test_failing_validation(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (repo / "treegate.config.yaml").write_text(FAILING_CONFIG)

        assert await validate_yaml() == 1

        data = read_yaml(capsys.readouterr().out)
        assert data["passed"] is False
        assert data["failed_step"] == "unit"

    async def test_missing_config(
        self, git_repo: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.chdir(git_repo)

        assert await _validate(False, False, False, False, None, None, False) == 1

        assert "Configuration error" in capsys.readouterr().out

    async def test_human_output(self, repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert await _validate(False, False, False, False, None, None, False) == 0

        out = capsys.readouterr().out
        assert "checks" in out
        assert "Validation passed" in out


class TestStateCommand:
    async def test_no_state_before_validation(self, repo: Path) -> None:
        assert await _show_state(False) is False

    async def test_state_after_validation(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        await validate_yaml()
        capsys.readouterr()

        assert await _show_state(True) is True

        data = read_yaml(capsys.readouterr().out)
        assert data["passed"] is True
        assert data["id"].startswith("run-")


class TestHistoryCommands:
    async def test_list_and_show(self, repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        await validate_yaml()
        capsys.readouterr()

        assert await _list_history(20, None, True) is True
        entries = read_yaml(capsys.readouterr().out)
        assert len(entries) == 1
        tree_hash = entries[0]["tree_hash"]

        assert await _show_history(tree_hash, True) is True
        note = read_yaml(capsys.readouterr().out)
        assert note["tree_hash"] == tree_hash
        assert len(note["runs"]) == 1

    async def test_show_rejects_invalid_hash(self, repo: Path) -> None:
        assert await _show_history("not-a-hash", False) is False

    async def test_prune_all(self, repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
        await validate_yaml()

        assert await _prune_history(None, True, False, False) is True

        assert await _show_state(False) is False


class TestRunCommand:
    async def test_prints_result_and_propagates_exit_code(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = await _run_command("echo 'error: nope' >&2; exit 4", False, False, None)

        assert exit_code == 4
        data = read_yaml(capsys.readouterr().out)
        assert data["exit_code"] == 4
        assert "error: nope" in data["extraction"]["error_summary"]

    async def test_success_is_cached(
        self, repo: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run_command("echo ok", False, False, None) == 0
        capsys.readouterr()

        assert await _run_command("echo ok", False, False, None) == 0

        assert read_yaml(capsys.readouterr().out)["is_cached_result"] is True

    async def test_missing_workdir(self, repo: Path) -> None:
        assert await _run_command("true", False, False, repo / "missing") == 1
