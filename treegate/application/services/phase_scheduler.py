import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from treegate.application.services.process_registry import ProcessRegistry
from treegate.domain.entities import StepResult
from treegate.domain.value_objects import ValidationPhase, ValidationStep
from treegate.infrastructure.checks.step_executor import StepExecution, StepExecutor, StepOptions
from treegate.infrastructure.process.process_executor import ProcessHandle

StepStartCallback = Callable[[ValidationStep], None]
StepCompleteCallback = Callable[[ValidationStep, StepResult], None]


@dataclass
class PhaseContext:
    executor: StepExecutor
    registry: ProcessRegistry
    options: StepOptions
    fail_fast: bool = True
    on_step_start: StepStartCallback | None = None
    on_step_complete: StepCompleteCallback | None = None


@dataclass
class PhaseOutcome:
    success: bool
    step_results: list[StepResult] = field(default_factory=list)
    outputs: dict[str, str] = field(default_factory=dict)
    failed_step: str | None = None


class PhaseScheduler(Protocol):
    async def run(self, phase: ValidationPhase, context: PhaseContext) -> PhaseOutcome:
        """Run every step of `phase` and report results in configured order."""
        ...


async def _run_step(
    step: ValidationStep,
    context: PhaseContext,
    on_spawn: Callable[[ProcessHandle], None] | None = None,
) -> StepExecution:
    if context.on_step_start is not None:
        context.on_step_start(step)

    spawned: list[ProcessHandle] = []

    def register(handle: ProcessHandle) -> None:
        context.registry.add(handle)
        spawned.append(handle)
        if on_spawn is not None:
            on_spawn(handle)

    try:
        execution = await context.executor.execute(step, context.options, on_spawn=register)
    finally:
        for handle in spawned:
            context.registry.discard(handle)

    if context.on_step_complete is not None:
        context.on_step_complete(step, execution.result)
    return execution


class SequentialScheduler:
    """One step at a time; step N+1 starts only after step N's process closed."""

    async def run(self, phase: ValidationPhase, context: PhaseContext) -> PhaseOutcome:
        outcome = PhaseOutcome(success=True)
        for step in phase.steps:
            execution = await _run_step(step, context)
            outcome.step_results.append(execution.result)
            outcome.outputs[step.name] = execution.output

            if execution.result.passed or outcome.failed_step is not None:
                continue
            outcome.success = False
            outcome.failed_step = step.name
            if context.fail_fast:
                logger.debug("Phase '{}' stopped at failed step '{}'", phase.name, step.name)
                break
        return outcome


class ParallelScheduler:
    """All steps at once; with fail-fast the first failure kills the rest.

    There is no concurrency cap and no per-step timeout: a step that never
    exits keeps the phase open until its process group is killed.
    """

    async def run(self, phase: ValidationPhase, context: PhaseContext) -> PhaseOutcome:
        process_executor = context.executor.process_executor
        running: dict[str, ProcessHandle] = {}
        kill_tasks: list[asyncio.Task[None]] = []
        trigger: str | None = None

        def kill(handle: ProcessHandle) -> None:
            kill_tasks.append(asyncio.create_task(process_executor.terminate(handle)))

        async def run_one(step: ValidationStep) -> StepExecution:
            nonlocal trigger

            def on_spawn(handle: ProcessHandle) -> None:
                if trigger is not None:
                    # Spawned after another step already failed
                    kill(handle)
                    return
                running[step.name] = handle

            execution = await _run_step(step, context, on_spawn)
            running.pop(step.name, None)

            # Decided without yielding, so exactly one step can become the trigger
            if not execution.result.passed and context.fail_fast and trigger is None:
                trigger = step.name
                logger.debug(
                    "Step '{}' failed, killing {} sibling step(s) in phase '{}'",
                    step.name,
                    len(running),
                    phase.name,
                )
                for handle in running.values():
                    kill(handle)
            return execution

        executions = await asyncio.gather(*(run_one(step) for step in phase.steps))
        if kill_tasks:
            await asyncio.gather(*kill_tasks)

        results = [execution.result for execution in executions]
        failed_step = trigger or next((r.name for r in results if not r.passed), None)
        return PhaseOutcome(
            success=failed_step is None,
            step_results=results,
            outputs={execution.result.name: execution.output for execution in executions},
            failed_step=failed_step,
        )


def select_scheduler(phase: ValidationPhase) -> PhaseScheduler:
    return ParallelScheduler() if phase.parallel else SequentialScheduler()
