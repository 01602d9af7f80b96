from rich.console import Console
from rich.markup import escape

from treegate.application.validation_runner import RunnerCallbacks
from treegate.cli.theme import theme
from treegate.domain.entities import PhaseResult, StepResult
from treegate.domain.value_objects import ValidationPhase, ValidationStep


def create_progress_callbacks(console: Console) -> RunnerCallbacks:
    """Runner callbacks that print one line per phase and step event."""

    def on_phase_start(phase: ValidationPhase) -> None:
        mode = "parallel" if phase.parallel else "sequential"
        console.print(
            f"\n[{theme.PHASE}]▶ {escape(phase.name)}[/] "
            f"[{theme.DIM}]({len(phase.steps)} steps, {mode})[/]"
        )

    def on_step_start(step: ValidationStep) -> None:
        console.print(f"  [{theme.STEP_RUNNING}]… {escape(step.name)}[/]")

    def on_step_complete(step: ValidationStep, result: StepResult) -> None:
        console.print(format_step_line(result))

    def on_phase_complete(phase: ValidationPhase, result: PhaseResult) -> None:
        style = theme.SUCCESS if result.passed else theme.ERROR
        status = "passed" if result.passed else "failed"
        console.print(
            f"  [{style}]{escape(phase.name)} {status}[/] [{theme.DIM}]{result.duration_secs}s[/]"
        )

    return RunnerCallbacks(
        on_phase_start=on_phase_start,
        on_phase_complete=on_phase_complete,
        on_step_start=on_step_start,
        on_step_complete=on_step_complete,
    )


def format_step_line(result: StepResult) -> str:
    if result.passed:
        marker = f"[{theme.STEP_PASSED}]✓[/]"
    else:
        marker = f"[{theme.STEP_FAILED}]✗[/]"
    cached = f" [{theme.CACHED}](cached)[/]" if result.is_cached_result else ""
    exit_info = "" if result.passed else f" [{theme.DIM}]exit {result.exit_code}[/]"
    return f"  {marker} {escape(result.name)}{cached} [{theme.DIM}]{result.duration_secs}s[/]{exit_info}"
