"""Single entry point for git subprocesses plus argument validation.

Arguments are always passed as a list (never through a shell) and refs
and object names are validated before they reach git.
"""

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from treegate.domain.errors import GitCommandError, InvalidRefError, InvalidTreeHashError

_TREE_HASH = re.compile(r"^[0-9a-f]+$")
_SHELL_SPECIAL = re.compile(r"[;&|`$(){}\[\]<>!\\\"]")


@dataclass(frozen=True)
class GitResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


async def run_git(
    args: list[str],
    cwd: str | Path | None = None,
    stdin: str | None = None,
    env: dict[str, str] | None = None,
    check: bool = True,
) -> GitResult:
    """Run `git <args>` and capture its output.

    With `check=True` a non-zero exit raises GitCommandError.
    Trailing newlines are stripped from stdout.
    """
    if not args:
        raise ValueError("git arguments must be a non-empty list")

    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(cwd) if cwd else None,
        env=env,
        stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate(stdin.encode() if stdin is not None else None)
    result = GitResult(
        stdout=stdout.decode(errors="replace").rstrip("\n"),
        stderr=stderr.decode(errors="replace"),
        exit_code=proc.returncode if proc.returncode is not None else 1,
    )

    if check and not result.success:
        logger.debug("git {} failed: {}", " ".join(args), result.stderr.strip())
        raise GitCommandError(args, result.exit_code, result.stderr)
    return result


def validate_tree_hash(tree_hash: str) -> None:
    """Accept only raw lowercase hex object names of 4 to 40 characters.

    Symbolic names such as HEAD or branch names are rejected.
    """
    if not tree_hash or not _TREE_HASH.match(tree_hash):
        raise InvalidTreeHashError(f"Invalid tree hash: must be hexadecimal: {tree_hash!r}")
    if not 4 <= len(tree_hash) <= 40:
        raise InvalidTreeHashError(f"Invalid tree hash: invalid length: {tree_hash!r}")


def validate_ref(ref: str) -> None:
    if not ref:
        raise InvalidRefError("Git ref must be a non-empty string")
    if _SHELL_SPECIAL.search(ref):
        raise InvalidRefError(f"Invalid git ref: contains shell special characters: {ref!r}")
    if ref.startswith("-"):
        raise InvalidRefError(f"Invalid git ref: starts with dash: {ref!r}")
    if ".." in ref or "//" in ref:
        raise InvalidRefError(f"Invalid git ref: contains path traversal: {ref!r}")
    if "\0" in ref:
        raise InvalidRefError("Invalid git ref: contains null byte")
    if "\n" in ref or "\r" in ref:
        raise InvalidRefError("Invalid git ref: contains newline")


def validate_notes_ref(ref: str) -> None:
    validate_ref(ref)
    if re.search(r"\s", ref):
        raise InvalidRefError(f"Invalid notes ref: contains whitespace: {ref!r}")


def full_notes_ref(ref: str) -> str:
    """Expand a short notes ref (`treegate/validate`) to `refs/notes/treegate/validate`."""
    return ref if ref.startswith("refs/") else f"refs/notes/{ref}"
