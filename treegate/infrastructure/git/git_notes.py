from enum import Enum
from pathlib import Path

from loguru import logger

from treegate.domain.errors import ReservedNamespaceError
from treegate.infrastructure.git.git_executor import (
    full_notes_ref,
    run_git,
    validate_notes_ref,
    validate_tree_hash,
)

TREEGATE_NOTES_NAMESPACE = "refs/notes/treegate/"

# stderr fragments git emits when another writer got there first
CONFLICT_MARKERS = (
    "already exists",
    "found existing notes",
    "cannot lock ref",
)


class NoteWriteStatus(str, Enum):
    WRITTEN = "written"
    CONFLICT = "conflict"
    FAILED = "failed"


def classify_note_write_failure(stderr: str) -> NoteWriteStatus:
    lowered = stderr.lower()
    if any(marker in lowered for marker in CONFLICT_MARKERS):
        return NoteWriteStatus.CONFLICT
    return NoteWriteStatus.FAILED


class GitNotesAdapter:
    """Git notes operations scoped to one repository directory."""

    def __init__(self, cwd: str | Path | None = None) -> None:
        self.cwd = cwd

    async def add_note(
        self,
        ref: str,
        object_hash: str,
        content: str,
        force: bool = False,
    ) -> NoteWriteStatus:
        validate_notes_ref(ref)
        validate_tree_hash(object_hash)

        args = ["notes", f"--ref={ref}", "add"]
        if force:
            args.append("-f")
        args.extend(["-F", "-", object_hash])

        result = await run_git(args, cwd=self.cwd, stdin=content, check=False)
        if result.success:
            return NoteWriteStatus.WRITTEN

        status = classify_note_write_failure(result.stderr)
        logger.debug(
            "Note write on {} ({}) returned {}: {}",
            object_hash,
            ref,
            status.value,
            result.stderr.strip(),
        )
        return status

    async def read_note(self, ref: str, object_hash: str) -> str | None:
        validate_notes_ref(ref)
        validate_tree_hash(object_hash)
        result = await run_git(
            ["notes", f"--ref={ref}", "show", object_hash], cwd=self.cwd, check=False
        )
        return result.stdout if result.success else None

    async def remove_note(self, ref: str, object_hash: str) -> bool:
        validate_notes_ref(ref)
        validate_tree_hash(object_hash)
        result = await run_git(
            ["notes", f"--ref={ref}", "remove", object_hash], cwd=self.cwd, check=False
        )
        return result.success

    async def has_note(self, ref: str, object_hash: str) -> bool:
        return await self.read_note(ref, object_hash) is not None

    async def list_notes(self, ref: str) -> list[tuple[str, str]]:
        """Return (annotated object, note content) pairs for every note under `ref`."""
        validate_notes_ref(ref)
        result = await run_git(["notes", f"--ref={ref}", "list"], cwd=self.cwd, check=False)
        if not result.success or not result.stdout:
            return []

        notes: list[tuple[str, str]] = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2:
                continue
            object_hash = parts[1]
            content = await self.read_note(ref, object_hash)
            if content is not None:
                notes.append((object_hash, content))
        return notes

    async def list_notes_refs(self, prefix: str) -> list[str]:
        full_prefix = full_notes_ref(prefix)
        validate_notes_ref(full_prefix)
        result = await run_git(
            ["for-each-ref", "--format=%(refname)", full_prefix], cwd=self.cwd, check=False
        )
        if not result.success or not result.stdout:
            return []
        return [line for line in result.stdout.splitlines() if line]

    async def remove_notes_refs(self, prefix: str) -> int:
        """Delete every notes ref under `prefix`, which must be inside the treegate namespace.

        Returns the number of refs deleted.
        """
        full_prefix = full_notes_ref(prefix)
        if not full_prefix.startswith(TREEGATE_NOTES_NAMESPACE):
            raise ReservedNamespaceError(
                f"Refusing to delete refs outside {TREEGATE_NOTES_NAMESPACE}: {full_prefix}"
            )

        deleted = 0
        for ref in await self.list_notes_refs(full_prefix):
            if not ref.startswith(TREEGATE_NOTES_NAMESPACE):
                logger.warning("Skipping ref outside treegate namespace: {}", ref)
                continue
            result = await run_git(["update-ref", "-d", ref], cwd=self.cwd, check=False)
            if result.success:
                deleted += 1
        return deleted

    async def has_notes_ref(self, ref: str) -> bool:
        return await self.get_notes_ref_sha(ref) is not None

    async def get_notes_ref_sha(self, ref: str) -> str | None:
        validate_notes_ref(ref)
        result = await run_git(
            ["rev-parse", "--verify", "--quiet", full_notes_ref(ref)], cwd=self.cwd, check=False
        )
        return result.stdout.strip() if result.success and result.stdout else None
