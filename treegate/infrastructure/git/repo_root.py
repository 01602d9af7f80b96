from pathlib import Path

from pydantic import BaseModel, Field

from treegate.infrastructure.git.git_executor import run_git


class RepoState(BaseModel, frozen=True):
    """Where HEAD points at the time a run is recorded."""

    branch: str = Field(description="Branch name, 'detached' or 'unknown'")
    head_commit: str = Field(description="HEAD commit sha or 'none' before the first commit")
    head_tree: str | None = None


async def get_repo_root(path: str | Path = ".") -> Path | None:
    """Return the repository top-level directory, or None outside a git repo."""
    result = await run_git(["rev-parse", "--show-toplevel"], cwd=Path(path).resolve(), check=False)
    if not result.success or not result.stdout:
        return None
    return Path(result.stdout.strip())


async def is_git_repo(path: str | Path = ".") -> bool:
    return await get_repo_root(path) is not None


async def get_git_dir(path: str | Path = ".") -> Path | None:
    result = await run_git(["rev-parse", "--absolute-git-dir"], cwd=path, check=False)
    return Path(result.stdout.strip()) if result.success and result.stdout else None


async def get_git_common_dir(path: str | Path = ".") -> Path | None:
    """Directory shared by all worktrees; refs (including notes) live here."""
    result = await run_git(
        ["rev-parse", "--path-format=absolute", "--git-common-dir"], cwd=path, check=False
    )
    return Path(result.stdout.strip()) if result.success and result.stdout else None


async def get_current_branch(path: str | Path = ".") -> str:
    result = await run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path, check=False)
    if not result.success or not result.stdout:
        # Unborn HEAD: fall back to the symbolic ref
        symbolic = await run_git(["symbolic-ref", "--short", "HEAD"], cwd=path, check=False)
        return symbolic.stdout.strip() if symbolic.success and symbolic.stdout else "unknown"
    branch = result.stdout.strip()
    return "detached" if branch == "HEAD" else branch


async def get_head_commit(path: str | Path = ".") -> str:
    result = await run_git(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=path, check=False)
    return result.stdout.strip() if result.success and result.stdout else "none"


async def get_head_tree(path: str | Path = ".") -> str | None:
    result = await run_git(
        ["rev-parse", "--verify", "--quiet", "HEAD^{tree}"], cwd=path, check=False
    )
    return result.stdout.strip() if result.success and result.stdout else None


async def get_repo_state(path: str | Path = ".") -> RepoState:
    return RepoState(
        branch=await get_current_branch(path),
        head_commit=await get_head_commit(path),
        head_tree=await get_head_tree(path),
    )
