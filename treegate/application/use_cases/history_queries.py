from treegate.application.dto.history_entry import HistoryEntry
from treegate.application.services.cache_lookup import find_cached_validation
from treegate.domain.entities import HistoryNote, ValidationRun
from treegate.domain.ports.tree_hash_port import TreeHashPort
from treegate.infrastructure.persistence.history_store import HistoryStore


class ListHistory:
    def __init__(self, history: HistoryStore):
        self.history = history

    async def execute(self, limit: int | None = None, branch: str | None = None) -> list[HistoryEntry]:
        """All recorded runs across trees, newest first."""
        entries = [
            HistoryEntry(tree_hash=note.tree_hash, run=run)
            for note in await self.history.get_all_history_notes()
            for run in note.runs
            if branch is None or run.branch == branch
        ]
        entries.sort(key=lambda entry: entry.run.timestamp, reverse=True)
        return entries[:limit] if limit else entries


class ShowHistory:
    def __init__(self, history: HistoryStore):
        self.history = history

    async def execute(self, tree_hash: str) -> HistoryNote | None:
        return await self.history.read_history_note(tree_hash)


class GetValidationState:
    """Latest recorded run matching the current working tree, if any."""

    def __init__(self, tree_hash_provider: TreeHashPort, history: HistoryStore):
        self.tree_hash_provider = tree_hash_provider
        self.history = history

    async def execute(self) -> ValidationRun | None:
        tree = await self.tree_hash_provider.compute()
        return await find_cached_validation(tree, self.history)
