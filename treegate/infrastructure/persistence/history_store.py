"""Validation history kept in git notes attached to tree objects.

One note per tree hash holds a YAML HistoryNote. A plain `git notes add`
either succeeds (no note yet) or reports that a note already exists, in
which case the existing note is merged and rewritten with `-f`, retrying a
bounded number of times. Every write is read back: a run missing from the
note afterwards counts as a conflict.

git updates the notes ref without checking its previous value, so two
`git notes add` calls racing on one repository can drop each other's
write. treegate processes therefore serialize their own writes through a
file lock in the git common dir; the read-back check covers other writers.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import yaml
from filelock import FileLock, Timeout
from loguru import logger
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from treegate.domain.entities import (
    HealthCheckResult,
    HistoryNote,
    PruneResult,
    RecordResult,
    ValidationResult,
    ValidationRun,
)
from treegate.domain.errors import NoteConflictError
from treegate.domain.services.history_merge import DEFAULT_MAX_RUNS_PER_TREE, merge_runs
from treegate.domain.value_objects import TreeHashResult
from treegate.infrastructure.git.git_executor import validate_tree_hash
from treegate.infrastructure.git.git_notes import GitNotesAdapter, NoteWriteStatus
from treegate.infrastructure.git.repo_root import get_git_common_dir, get_repo_state
from treegate.infrastructure.utils.yaml_io import model_to_yaml

DEFAULT_HISTORY_REF = "treegate/validate"
MAX_MERGE_ATTEMPTS = 3
NOTES_LOCK_NAME = "treegate-notes.lock"
NOTES_LOCK_TIMEOUT_SECS = 30
DEFAULT_WARN_AFTER_DAYS = 30
DEFAULT_WARN_AFTER_COUNT = 1000


def _log_retry(retry_state: Any) -> None:
    exc = retry_state.outcome.exception()
    logger.debug("History note write retry {}: {}", retry_state.attempt_number, exc)


def parse_history_note(content: str, tree_hash: str) -> HistoryNote | None:
    """Parse a note body, dropping runs that no longer validate."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.warning("Ignoring unparseable history note on {}: {}", tree_hash, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed history note on {}", tree_hash)
        return None

    runs: list[ValidationRun] = []
    for index, raw in enumerate(data.get("runs") or []):
        try:
            runs.append(ValidationRun.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping corrupted run #{} in history note {} ({} errors)",
                index,
                tree_hash,
                e.error_count(),
            )
    return HistoryNote(tree_hash=str(data.get("tree_hash") or tree_hash), runs=runs)


class HistoryStore:
    def __init__(
        self,
        notes: GitNotesAdapter,
        ref: str = DEFAULT_HISTORY_REF,
        max_runs_per_tree: int = DEFAULT_MAX_RUNS_PER_TREE,
    ) -> None:
        self.notes = notes
        self.ref = ref
        self.max_runs_per_tree = max_runs_per_tree

    async def read_history_note(self, tree_hash: str) -> HistoryNote | None:
        content = await self.notes.read_note(self.ref, tree_hash)
        if content is None:
            return None
        return parse_history_note(content, tree_hash)

    async def list_history_tree_hashes(self) -> list[str]:
        return [object_hash for object_hash, _ in await self.notes.list_notes(self.ref)]

    async def get_all_history_notes(self) -> list[HistoryNote]:
        notes: list[HistoryNote] = []
        for object_hash, content in await self.notes.list_notes(self.ref):
            note = parse_history_note(content, object_hash)
            if note is not None:
                notes.append(note)
        return notes

    async def append_runs(self, tree_hash: str, runs: list[ValidationRun]) -> RecordResult:
        """Append runs to the note for `tree_hash` using optimistic locking.

        Never raises on contention: exhaustion and hard failures are
        reported through RecordResult.recorded.
        """
        validate_tree_hash(tree_hash)

        try:
            async with self._write_lock():
                return await self._append_locked(tree_hash, runs)
        except Timeout:
            logger.warning("Timed out waiting for the history write lock on {}", tree_hash)
            return RecordResult(
                recorded=False,
                tree_hash=tree_hash,
                reason=f"History write lock not acquired within {NOTES_LOCK_TIMEOUT_SECS}s",
            )

    @asynccontextmanager
    async def _write_lock(self) -> AsyncIterator[None]:
        git_dir = await get_git_common_dir(self.notes.cwd or ".")
        if git_dir is None:
            yield
            return

        # Acquired and released from worker threads, so ownership must not be per-thread
        lock = FileLock(git_dir / NOTES_LOCK_NAME, thread_local=False)
        await asyncio.to_thread(lock.acquire, timeout=NOTES_LOCK_TIMEOUT_SECS)
        try:
            yield
        finally:
            await asyncio.to_thread(lock.release)

    async def _append_locked(self, tree_hash: str, runs: list[ValidationRun]) -> RecordResult:
        fresh = HistoryNote(tree_hash=tree_hash, runs=merge_runs([], runs, self.max_runs_per_tree))
        status = await self.notes.add_note(self.ref, tree_hash, model_to_yaml(fresh))
        if status is NoteWriteStatus.FAILED:
            return RecordResult(recorded=False, tree_hash=tree_hash, reason="Failed to add git note")
        if status is NoteWriteStatus.WRITTEN:
            if await self._contains_runs(tree_hash, fresh.runs):
                return RecordResult(recorded=True, tree_hash=tree_hash)
            logger.debug("Note {} was overwritten right after creation, merging", tree_hash)

        try:
            status = await self._merge_and_write(tree_hash, runs)
        except NoteConflictError:
            logger.warning(
                "Giving up on history note {} after {} concurrent-update retries",
                tree_hash,
                MAX_MERGE_ATTEMPTS,
            )
            return RecordResult(
                recorded=False,
                tree_hash=tree_hash,
                reason=f"Concurrent updates persisted after {MAX_MERGE_ATTEMPTS} attempts",
            )

        if status is NoteWriteStatus.FAILED:
            return RecordResult(recorded=False, tree_hash=tree_hash, reason="Failed to add git note")
        return RecordResult(recorded=True, tree_hash=tree_hash)

    @retry(
        retry=retry_if_exception_type(NoteConflictError),
        stop=stop_after_attempt(MAX_MERGE_ATTEMPTS),
        wait=wait_random(min=0.01, max=0.1),
        before_sleep=_log_retry,
        reraise=True,
    )
    async def _merge_and_write(self, tree_hash: str, runs: list[ValidationRun]) -> NoteWriteStatus:
        existing = await self.read_history_note(tree_hash)
        merged = merge_runs(existing.runs if existing else [], runs, self.max_runs_per_tree)
        note = HistoryNote(tree_hash=tree_hash, runs=merged)

        status = await self.notes.add_note(self.ref, tree_hash, model_to_yaml(note), force=True)
        if status is NoteWriteStatus.CONFLICT:
            raise NoteConflictError(self.ref, tree_hash)
        # A forced write never conflicts, so a lost race only shows up on read-back
        if status is NoteWriteStatus.WRITTEN and not await self._contains_runs(
            tree_hash, [run for run in merged if run in runs]
        ):
            raise NoteConflictError(self.ref, tree_hash)
        return status

    async def _contains_runs(self, tree_hash: str, runs: list[ValidationRun]) -> bool:
        note = await self.read_history_note(tree_hash)
        present = {run.id for run in note.runs} if note else set()
        return all(run.id in present for run in runs)

    async def record_validation(
        self,
        tree_hash_result: TreeHashResult,
        result: ValidationResult,
    ) -> RecordResult:
        repo = await get_repo_state(self.notes.cwd or ".")
        run = ValidationRun(
            id=f"run-{int(time.time() * 1000)}-{uuid4().hex[:8]}",
            timestamp=datetime.now(UTC),
            duration=int(sum(phase.duration_secs for phase in result.phases) * 1000),
            passed=result.passed,
            branch=repo.branch,
            head_commit=repo.head_commit,
            uncommitted_changes=repo.head_tree != tree_hash_result.hash,
            submodule_hashes=tree_hash_result.submodule_hashes,
            result=result,
        )
        return await self.append_runs(tree_hash_result.hash, [run])

    async def prune_by_age(self, older_than_days: int, dry_run: bool = False) -> PruneResult:
        """Remove notes whose oldest run is older than the cutoff."""
        cutoff = datetime.now(UTC) - timedelta(days=older_than_days)
        all_notes = await self.get_all_history_notes()

        pruned: list[str] = []
        runs_pruned = 0
        for note in all_notes:
            if not note.runs or note.runs[0].timestamp >= cutoff:
                continue
            if not dry_run:
                await self.notes.remove_note(self.ref, note.tree_hash)
            pruned.append(note.tree_hash)
            runs_pruned += len(note.runs)

        return PruneResult(
            notes_pruned=len(pruned),
            runs_pruned=runs_pruned,
            notes_remaining=len(all_notes) - len(pruned),
            pruned_tree_hashes=pruned,
        )

    async def prune_all(self, dry_run: bool = False) -> PruneResult:
        all_notes = await self.get_all_history_notes()
        if not dry_run:
            for note in all_notes:
                await self.notes.remove_note(self.ref, note.tree_hash)
        return PruneResult(
            notes_pruned=len(all_notes),
            runs_pruned=sum(len(note.runs) for note in all_notes),
            notes_remaining=0,
            pruned_tree_hashes=[note.tree_hash for note in all_notes],
        )

    async def check_health(
        self,
        warn_after_days: int = DEFAULT_WARN_AFTER_DAYS,
        warn_after_count: int = DEFAULT_WARN_AFTER_COUNT,
    ) -> HealthCheckResult:
        all_notes = await self.get_all_history_notes()
        cutoff = datetime.now(UTC) - timedelta(days=warn_after_days)
        old_count = sum(1 for note in all_notes if note.runs and note.runs[0].timestamp < cutoff)

        too_many = len(all_notes) > warn_after_count
        too_old = old_count > 0
        prune_hint = f"treegate history prune --older-than {warn_after_days}"

        message: str | None = None
        if too_many and too_old:
            message = (
                f"Validation history has grown large ({len(all_notes)} tree hashes)\n"
                f"Found {old_count} notes older than {warn_after_days} days\n"
                f"Consider pruning: {prune_hint}"
            )
        elif too_many:
            message = (
                f"Validation history has grown large ({len(all_notes)} tree hashes)\n"
                f"Consider pruning: {prune_hint}"
            )
        elif too_old:
            message = (
                f"Found validation history older than {warn_after_days} days\n"
                f"{old_count} tree hashes can be pruned\n"
                f"Run: {prune_hint}"
            )

        return HealthCheckResult(
            total_notes=len(all_notes),
            old_notes_count=old_count,
            should_warn=too_many or too_old,
            warning_message=message,
        )
