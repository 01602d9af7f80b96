from typing import Protocol

from treegate.domain.entities import HistoryNote, ValidationRun
from treegate.domain.services.submodule_matcher import submodule_hashes_match
from treegate.domain.value_objects import TreeHashResult


class HistoryReader(Protocol):
    async def read_history_note(self, tree_hash: str) -> HistoryNote | None: ...


async def find_cached_validation(
    tree: TreeHashResult,
    history: HistoryReader,
) -> ValidationRun | None:
    """Most recent recorded run for this tree whose submodule state matches exactly.

    Runs are scanned newest to oldest. The caller decides whether a
    failed run counts as a cache hit.
    """
    if not tree.is_known:
        return None

    note = await history.read_history_note(tree.hash)
    if note is None or not note.runs:
        return None

    for run in reversed(note.runs):
        if submodule_hashes_match(run.submodule_hashes, tree.submodule_hashes):
            return run
    return None
