"""Deterministic content hash of a working tree.

The hash is what `git write-tree` would produce if every tracked and
untracked (non-ignored) file were staged. A private copy of the index is
used so the user's real index, stash and history are never touched.
"""

import asyncio
import os
import shutil
from pathlib import Path

from loguru import logger

from treegate.domain.errors import GitCommandError
from treegate.domain.ports.tree_hash_port import TreeHashPort
from treegate.domain.value_objects import UNKNOWN_TREE_HASH, TreeHashResult
from treegate.infrastructure.git.git_executor import run_git
from treegate.infrastructure.git.repo_root import get_git_dir, get_repo_root


def parse_submodule_status(output: str) -> list[str]:
    """Return paths of initialized submodules from `git submodule status` output.

    Each line is `<flag><sha> <path>[ (<describe>)]`; a leading '-' marks
    an uninitialized submodule, which has no working tree to hash.
    """
    paths: list[str] = []
    for line in output.splitlines():
        if not line.strip() or line.startswith("-"):
            continue
        parts = line[1:].split()
        if len(parts) >= 2:
            paths.append(parts[1])
    return sorted(paths)


class GitTreeHashProvider(TreeHashPort):
    def __init__(self, cwd: str | Path = ".") -> None:
        self.cwd = Path(cwd)

    async def compute(self) -> TreeHashResult:
        repo_root = await get_repo_root(self.cwd)
        if repo_root is None:
            logger.debug("Not a git repository: {}", self.cwd)
            return TreeHashResult(hash=UNKNOWN_TREE_HASH)

        tree_hash = await _write_worktree_tree(repo_root)

        submodule_hashes: dict[str, str] = {}
        for path in await _initialized_submodules(repo_root):
            try:
                sub = await GitTreeHashProvider(repo_root / path).compute()
            except GitCommandError as e:
                logger.warning("Skipping submodule {}: {}", path, e)
                continue
            if sub.is_known:
                submodule_hashes[path] = sub.hash

        return TreeHashResult(hash=tree_hash, submodule_hashes=submodule_hashes or None)


async def _write_worktree_tree(repo_root: Path) -> str:
    git_dir = await get_git_dir(repo_root)
    if git_dir is None:
        raise GitCommandError(["rev-parse", "--absolute-git-dir"], 1, "git directory not found")

    real_index = git_dir / "index"
    temp_index = git_dir / f"treegate-temp-index-{os.getpid()}"
    env = dict(os.environ)
    env["GIT_INDEX_FILE"] = str(temp_index)

    try:
        if real_index.exists():
            await asyncio.to_thread(shutil.copyfile, real_index, temp_index)
        # Must run from the repository root so --all covers the whole tree
        await run_git(["add", "--all"], cwd=repo_root, env=env)
        result = await run_git(["write-tree"], cwd=repo_root, env=env)
        return result.stdout.strip()
    finally:
        temp_index.unlink(missing_ok=True)


async def _initialized_submodules(repo_root: Path) -> list[str]:
    if not (repo_root / ".gitmodules").exists():
        return []
    result = await run_git(["submodule", "status"], cwd=repo_root, check=False)
    if not result.success:
        logger.warning("git submodule status failed: {}", result.stderr.strip())
        return []
    return parse_submodule_status(result.stdout)
