from contextlib import AbstractAsyncContextManager, nullcontext
from dataclasses import replace
from pathlib import Path

from loguru import logger

from treegate.application.dto.validation_outcome import ValidationOutcome
from treegate.application.services.cache_lookup import find_cached_validation
from treegate.application.validation_runner import RunnerOptions, ValidationRunner
from treegate.domain.services.flakiness_detector import find_flaky_steps, format_flakiness_warning
from treegate.infrastructure.config.config_loader import TreegateConfig
from treegate.infrastructure.persistence.history_store import HistoryStore
from treegate.infrastructure.persistence.validation_lock import validation_lock


class RunValidation:
    """Cache check, locked run, stability check, then history recording.

    A cached run is reused only if it passed: failures are always re-run
    so that flaky steps get a second chance.
    """

    def __init__(
        self,
        config: TreegateConfig,
        runner: ValidationRunner,
        history: HistoryStore | None,
        repo_root: Path,
        wait_for_lock: bool = False,
    ):
        self.config = config
        self.runner = runner
        self.history = history if config.history.enabled else None
        self.repo_root = repo_root
        self.wait_for_lock = wait_for_lock

    async def execute(self, options: RunnerOptions, force: bool = False) -> ValidationOutcome:
        tree = await self.runner.tree_hash_provider.compute()
        can_use_history = self.history is not None and tree.is_known

        if not force and can_use_history:
            cached = await find_cached_validation(tree, self.history)
            if cached is not None and cached.passed:
                logger.info("Cache hit for tree {} (run {})", tree.hash, cached.id)
                return ValidationOutcome(
                    result=cached.result.model_copy(update={"is_cached_result": True}),
                    tree=tree,
                    from_cache=True,
                )

        options = replace(
            options,
            fail_fast=(
                self.config.validation.fail_fast if options.fail_fast is None else options.fail_fast
            ),
            env={**self.config.env, **options.env},
            cwd=options.cwd or self.repo_root,
        )

        async with self._lock():
            result = await self.runner.run(self.config.validation.phases, options, tree)

        outcome = ValidationOutcome(result=result, tree=tree)
        if can_use_history:
            await self._record(outcome)
        return outcome

    def _lock(self) -> AbstractAsyncContextManager[object]:
        if not self.config.locking.enabled:
            return nullcontext()
        return validation_lock(self.repo_root, wait=self.wait_for_lock)

    async def _record(self, outcome: ValidationOutcome) -> None:
        history = self.history
        if history is None:
            return

        after = await self.runner.tree_hash_provider.compute()
        if after.hash != outcome.tree.hash:
            outcome.warnings.append(
                "Working tree changed during validation; result was not recorded "
                f"({outcome.tree.hash[:12]} -> {after.hash[:12]})"
            )
            return

        previous = await history.read_history_note(outcome.tree.hash)
        outcome.record = await history.record_validation(outcome.tree, outcome.result)
        if not outcome.record.recorded:
            outcome.warnings.append(f"Validation history not recorded: {outcome.record.reason}")

        flaky = format_flakiness_warning(find_flaky_steps(previous, outcome.result))
        if flaky:
            outcome.warnings.append(flaky)

        retention = self.config.history.retention
        health = await history.check_health(retention.warn_after_days, retention.warn_after_count)
        if health.should_warn and health.warning_message:
            outcome.warnings.append(health.warning_message)

