import asyncio
from pathlib import Path

import typer
from rich.console import Console

from treegate.application.services.lifecycle import LifecycleGuard
from treegate.application.services.process_registry import ProcessRegistry
from treegate.application.use_cases.run_command import RunCommand
from treegate.cli.theme import theme
from treegate.cli.utils import print_yaml, resolve_project_root
from treegate.domain.entities import RunResult
from treegate.infrastructure.checks.step_executor import StepExecutor
from treegate.infrastructure.git.git_notes import GitNotesAdapter
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider
from treegate.infrastructure.persistence.run_cache_store import RunCacheStore
from treegate.infrastructure.process.process_executor import ProcessExecutor


def run_command(
    command: str = typer.Argument(..., help="Shell command to run"),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore a cached successful result"),
    verbose: bool = typer.Option(False, "--verbose", help="Stream command output to stderr"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Working directory for the command"),
) -> None:
    """Run one command and print its extracted result as YAML.

    Exits with the command's own exit code.
    """
    exit_code = asyncio.run(_run_command(command, force, verbose, cwd))
    if exit_code:
        raise typer.Exit(exit_code)


async def _run_command(command: str, force: bool, verbose: bool, cwd: Path | None) -> int:
    console = Console(stderr=True)
    workdir = (cwd or Path.cwd()).resolve()
    if not workdir.is_dir():
        console.print(f"[{theme.ERROR_BOLD}]Not a directory:[/] {workdir}")
        return 1

    root, in_repo = await resolve_project_root(workdir)
    registry = ProcessRegistry()
    process_executor = ProcessExecutor()
    use_case = RunCommand(
        tree_hash_provider=GitTreeHashProvider(root),
        step_executor=StepExecutor(process_executor),
        registry=registry,
        run_cache=RunCacheStore(GitNotesAdapter(root)) if in_repo else None,
        repo_root=root if in_repo else None,
    )

    result: RunResult | None = None
    async with LifecycleGuard(registry, process_executor) as guard:
        result = await use_case.execute(command, workdir, force=force, verbose=verbose)

    if guard.received_signal is not None or result is None:
        console.print(f"[{theme.WARNING_BOLD}]Interrupted[/]")
        return guard.exit_code or 130

    print_yaml(result)
    return result.exit_code
