from loguru import logger

from treegate.domain.entities import PruneResult
from treegate.infrastructure.persistence.history_store import HistoryStore
from treegate.infrastructure.persistence.run_cache_store import RunCacheStore


class PruneHistory:
    def __init__(self, history: HistoryStore, run_cache: RunCacheStore):
        self.history = history
        self.run_cache = run_cache

    async def execute(
        self,
        older_than_days: int | None = None,
        prune_all: bool = False,
        include_run_cache: bool = False,
        dry_run: bool = False,
    ) -> dict[str, PruneResult]:
        """Prune validation history and optionally the run cache.

        Exactly one of `older_than_days` / `prune_all` selects history
        notes; with neither, only the run cache is considered.
        """
        if older_than_days is not None and prune_all:
            raise ValueError("older_than_days and prune_all are mutually exclusive")

        results: dict[str, PruneResult] = {}
        if prune_all:
            results["history"] = await self.history.prune_all(dry_run=dry_run)
        elif older_than_days is not None:
            results["history"] = await self.history.prune_by_age(older_than_days, dry_run=dry_run)

        if include_run_cache:
            results["run_cache"] = await self.run_cache.prune_all(dry_run=dry_run)

        for name, result in results.items():
            logger.info(
                "Pruned {}: {} notes, {} runs{}",
                name,
                result.notes_pruned,
                result.runs_pruned,
                " (dry run)" if dry_run else "",
            )
        return results
