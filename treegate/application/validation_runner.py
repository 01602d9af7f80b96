import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from treegate.application.services.phase_scheduler import (
    PhaseContext,
    PhaseOutcome,
    StepCompleteCallback,
    StepStartCallback,
    select_scheduler,
)
from treegate.application.services.process_registry import ProcessRegistry
from treegate.domain.entities import PhaseResult, ValidationResult
from treegate.domain.ports.tree_hash_port import TreeHashPort
from treegate.domain.value_objects import TreeHashResult, ValidationPhase
from treegate.infrastructure.checks.step_executor import StepExecutor, StepOptions
from treegate.infrastructure.persistence._paths import OutputPathBuilder
from treegate.infrastructure.persistence.output_files import append_log

LOG_SEPARATOR = "=" * 60


@dataclass
class RunnerCallbacks:
    on_phase_start: Callable[[ValidationPhase], None] | None = None
    on_phase_complete: Callable[[ValidationPhase, PhaseResult], None] | None = None
    on_step_start: StepStartCallback | None = None
    on_step_complete: StepCompleteCallback | None = None


@dataclass
class RunnerOptions:
    verbose: bool = False
    debug: bool = False
    yaml_mode: bool = False
    fail_fast: bool | None = None
    env: dict[str, str] = field(default_factory=dict)
    cwd: Path | None = None
    log_file: Path | None = None


def format_step_log(name: str, output: str, passed: bool) -> str:
    title = name if passed else f"{name} - FAILED"
    return f"{LOG_SEPARATOR}\n{title}\n{LOG_SEPARATOR}\n{output}\n"


class ValidationRunner:
    """Runs configured phases in order and builds the ValidationResult.

    The tree hash is taken once, before the first phase. A failed phase
    ends the run; later phases never start.
    """

    def __init__(
        self,
        tree_hash_provider: TreeHashPort,
        step_executor: StepExecutor | None = None,
        registry: ProcessRegistry | None = None,
        paths: OutputPathBuilder | None = None,
        callbacks: RunnerCallbacks | None = None,
    ) -> None:
        self.tree_hash_provider = tree_hash_provider
        self.step_executor = step_executor or StepExecutor()
        self.registry = registry or ProcessRegistry()
        self.paths = paths or OutputPathBuilder()
        self.callbacks = callbacks or RunnerCallbacks()

    async def run(
        self,
        phases: list[ValidationPhase],
        options: RunnerOptions | None = None,
        tree: TreeHashResult | None = None,
    ) -> ValidationResult:
        options = options or RunnerOptions()
        tree = tree or await self.tree_hash_provider.compute()
        started_at = datetime.now(UTC)

        log_file = options.log_file or self.paths.validation_log(tree.hash, started_at)
        log_ok = await append_log(log_file, f"Validation started at {started_at.isoformat()}\n\n")

        step_options = StepOptions(
            verbose=options.verbose,
            debug=options.debug,
            yaml_mode=options.yaml_mode,
            env=options.env,
            cwd=options.cwd,
            tree_hash=tree.hash,
        )

        phase_results: list[PhaseResult] = []
        for phase in phases:
            if self.callbacks.on_phase_start is not None:
                self.callbacks.on_phase_start(phase)

            phase_started = time.monotonic()
            context = PhaseContext(
                executor=self.step_executor,
                registry=self.registry,
                options=step_options,
                fail_fast=options.fail_fast if options.fail_fast is not None else phase.fail_fast,
                on_step_start=self.callbacks.on_step_start,
                on_step_complete=self.callbacks.on_step_complete,
            )
            outcome = await select_scheduler(phase).run(phase, context)

            if log_ok:
                log_ok = await append_log(log_file, _phase_log(outcome))

            phase_result = PhaseResult(
                name=phase.name,
                passed=outcome.success,
                duration_secs=round(time.monotonic() - phase_started, 1),
                steps=outcome.step_results,
            )
            phase_results.append(phase_result)
            if self.callbacks.on_phase_complete is not None:
                self.callbacks.on_phase_complete(phase, phase_result)

            if not outcome.success:
                logger.info("Validation failed in phase '{}' at '{}'", phase.name, outcome.failed_step)
                return ValidationResult(
                    passed=False,
                    timestamp=started_at,
                    tree_hash=tree.hash,
                    summary=f"{outcome.failed_step} failed",
                    failed_step=outcome.failed_step,
                    phases=phase_results,
                    full_log_file=str(log_file) if log_ok else None,
                )

        logger.info("Validation passed for tree {}", tree.hash)
        return ValidationResult(
            passed=True,
            timestamp=started_at,
            tree_hash=tree.hash,
            summary="Validation passed",
            phases=phase_results,
            full_log_file=str(log_file) if log_ok else None,
        )


def _phase_log(outcome: PhaseOutcome) -> str:
    return "".join(
        format_step_log(result.name, outcome.outputs.get(result.name, ""), result.passed)
        for result in outcome.step_results
    )
