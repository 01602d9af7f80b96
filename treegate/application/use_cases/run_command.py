from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from treegate.application.services.process_registry import ProcessRegistry
from treegate.domain.entities import RunCacheNote, RunResult
from treegate.domain.ports.tree_hash_port import TreeHashPort
from treegate.domain.value_objects import ValidationStep
from treegate.infrastructure.checks.step_executor import StepExecutor, StepOptions
from treegate.infrastructure.persistence.run_cache_store import RunCacheStore
from treegate.infrastructure.process.process_executor import ProcessHandle


class RunCommand:
    """Run one shell command with extraction and a per-tree result cache.

    Only successful runs are cached; a failing command always runs again.
    """

    def __init__(
        self,
        tree_hash_provider: TreeHashPort,
        step_executor: StepExecutor,
        registry: ProcessRegistry,
        run_cache: RunCacheStore | None,
        repo_root: Path | None,
    ):
        self.tree_hash_provider = tree_hash_provider
        self.step_executor = step_executor
        self.registry = registry
        self.run_cache = run_cache
        self.repo_root = repo_root

    async def execute(
        self,
        command: str,
        workdir: Path,
        force: bool = False,
        verbose: bool = False,
    ) -> RunResult:
        tree = await self.tree_hash_provider.compute()
        relative_workdir = self._relative_workdir(workdir)
        use_cache = self.run_cache is not None and tree.is_known

        if use_cache and not force:
            cached = await self.run_cache.get(tree.hash, command, relative_workdir)
            if cached is not None and cached.exit_code == 0:
                logger.info("Run cache hit for '{}' on tree {}", command, tree.hash)
                return RunResult(
                    command=command,
                    exit_code=cached.exit_code,
                    duration_secs=round(cached.duration / 1000, 1),
                    timestamp=cached.timestamp,
                    tree_hash=tree.hash,
                    extraction=cached.extraction,
                    is_cached_result=True,
                )

        options = StepOptions(
            verbose=verbose,
            yaml_mode=True,
            cwd=workdir,
            tree_hash=tree.hash,
            output_scope="runs",
        )

        spawned: list[ProcessHandle] = []

        def register(handle: ProcessHandle) -> None:
            self.registry.add(handle)
            spawned.append(handle)

        try:
            execution = await self.step_executor.execute(
                ValidationStep(name=command, command=command), options, on_spawn=register
            )
        finally:
            for handle in spawned:
                self.registry.discard(handle)

        step = execution.result
        result = RunResult(
            command=command,
            exit_code=step.exit_code,
            duration_secs=step.duration_secs,
            tree_hash=tree.hash,
            extraction=step.extraction,
            is_cached_result=step.is_cached_result,
            output_files=step.output_files,
        )

        if use_cache and step.exit_code == 0:
            stored = await self.run_cache.put(
                RunCacheNote(
                    tree_hash=tree.hash,
                    command=command,
                    workdir=relative_workdir,
                    timestamp=datetime.now(UTC),
                    exit_code=step.exit_code,
                    duration=int(step.duration_secs * 1000),
                    extraction=step.extraction,
                )
            )
            if not stored:
                logger.warning("Could not store run cache entry for '{}'", command)
        return result

    def _relative_workdir(self, workdir: Path) -> str:
        if self.repo_root is None:
            return ""
        try:
            relative = workdir.resolve().relative_to(self.repo_root.resolve())
        except ValueError:
            return str(workdir.resolve())
        return "" if str(relative) == "." else relative.as_posix()
