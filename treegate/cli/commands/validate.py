import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from treegate.application.dto import ValidationOutcome
from treegate.application.services.lifecycle import LifecycleGuard
from treegate.application.services.process_registry import ProcessRegistry
from treegate.application.use_cases.run_validation import RunValidation
from treegate.application.validation_runner import RunnerOptions, ValidationRunner
from treegate.cli.formatters import create_progress_callbacks, format_validation_outcome
from treegate.cli.theme import theme
from treegate.cli.utils import print_yaml, resolve_project_root
from treegate.domain.errors import ConfigError, ValidationLockError
from treegate.infrastructure.checks.step_executor import StepExecutor
from treegate.infrastructure.config.config_loader import resolve_config
from treegate.infrastructure.git.git_notes import GitNotesAdapter
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider
from treegate.infrastructure.persistence.history_store import HistoryStore
from treegate.infrastructure.process.process_executor import ProcessExecutor


def validate(
    force: bool = typer.Option(False, "--force", "-f", help="Run even if a passing result is cached"),
    verbose: bool = typer.Option(False, "--verbose", help="Stream step output while it runs"),
    yaml_output: bool = typer.Option(False, "--yaml", help="Print the result as YAML on stdout"),
    debug: bool = typer.Option(
        False, "--debug", help="Extract and keep output files for passing steps too"
    ),
    fail_fast: bool | None = typer.Option(
        None,
        "--fail-fast/--no-fail-fast",
        help="Override each phase's fail-fast setting",
    ),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file path"),
    wait: bool = typer.Option(False, "--wait", help="Wait for a running validation to finish"),
) -> None:
    """Run all validation phases for the current working tree."""
    exit_code = asyncio.run(
        _validate(force, verbose, yaml_output, debug, fail_fast, config_path, wait)
    )
    if exit_code:
        raise typer.Exit(exit_code)


async def _validate(
    force: bool,
    verbose: bool,
    yaml_output: bool,
    debug: bool,
    fail_fast: bool | None,
    config_path: Path | None,
    wait: bool,
) -> int:
    # In YAML mode stdout carries only the result document
    console = Console(stderr=yaml_output)
    root, in_repo = await resolve_project_root()
    if not in_repo:
        console.print(f"[{theme.WARNING}]Not a git repository: caching and history disabled[/]")

    try:
        config = resolve_config(root, config_path)
    except ConfigError as e:
        console.print(f"[{theme.ERROR_BOLD}]Configuration error:[/] {e}")
        return 1

    registry = ProcessRegistry()
    process_executor = ProcessExecutor()
    runner = ValidationRunner(
        tree_hash_provider=GitTreeHashProvider(root),
        step_executor=StepExecutor(process_executor),
        registry=registry,
        callbacks=create_progress_callbacks(console),
    )
    history: HistoryStore | None = None
    if in_repo:
        history = HistoryStore(
            GitNotesAdapter(root),
            ref=config.history.git_notes.ref,
            max_runs_per_tree=config.history.git_notes.max_runs_per_tree,
        )
    use_case = RunValidation(config, runner, history, root, wait_for_lock=wait)
    options = RunnerOptions(verbose=verbose, debug=debug, yaml_mode=yaml_output, fail_fast=fail_fast)

    outcome: ValidationOutcome | None = None
    async with LifecycleGuard(registry, process_executor) as guard:
        try:
            outcome = await use_case.execute(options, force=force)
        except ValidationLockError as e:
            console.print(f"[{theme.ERROR_BOLD}]{e}[/]")
            console.print(f"[{theme.DIM}]Use --wait to wait for it to finish.[/]")
            return 1

    if guard.received_signal is not None or outcome is None:
        console.print(f"\n[{theme.WARNING_BOLD}]Validation interrupted[/]")
        return guard.exit_code or 130

    if yaml_output:
        print_yaml(outcome.result)
        for warning in outcome.warnings:
            console.print(escape(warning), style=theme.WARNING)
    else:
        format_validation_outcome(console, outcome)

    return 0 if outcome.result.passed else 1
