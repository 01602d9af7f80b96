import asyncio
from pathlib import Path

import pytest

from treegate.infrastructure.persistence._paths import OutputPathBuilder


async def git(cwd: Path, *args: str) -> str:
    """Run a git command for test setup and return its stdout."""
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise RuntimeError(f"Git failed: {stderr.decode()}")
    return stdout.decode().strip()


@pytest.fixture
async def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository with initial commit."""
    repo = tmp_path / "repo"
    repo.mkdir()
    await git(repo, "init")
    await git(repo, "config", "user.email", "test@test.com")
    await git(repo, "config", "user.name", "Test User")

    (repo / "initial.txt").write_text("initial content\n")
    await git(repo, "add", ".")
    await git(repo, "commit", "-m", "Initial commit")

    return repo.resolve()


@pytest.fixture
def paths(tmp_path: Path) -> OutputPathBuilder:
    return OutputPathBuilder(tmp_path / "treegate-tmp")

