import asyncio

import typer
from rich.console import Console

from treegate.application.use_cases.history_queries import GetValidationState
from treegate.cli.formatters import format_run_summary
from treegate.cli.theme import theme
from treegate.cli.utils import history_ref, print_yaml, resolve_project_root
from treegate.infrastructure.git.git_notes import GitNotesAdapter
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider
from treegate.infrastructure.persistence.history_store import HistoryStore


def show_state(
    yaml_output: bool = typer.Option(False, "--yaml", help="Print the recorded run as YAML"),
) -> None:
    """Show whether the current working tree has already been validated."""
    if not asyncio.run(_show_state(yaml_output)):
        raise typer.Exit(1)


async def _show_state(yaml_output: bool) -> bool:
    console = Console(stderr=yaml_output)
    root, in_repo = await resolve_project_root()
    if not in_repo:
        console.print(f"[{theme.ERROR_BOLD}]Not a git repository:[/] {root}")
        return False

    provider = GitTreeHashProvider(root)
    history = HistoryStore(GitNotesAdapter(root), ref=history_ref(root))
    run = await GetValidationState(provider, history).execute()
    if run is None:
        console.print(f"[{theme.WARNING}]No validation recorded for the current working tree[/]")
        return False

    if yaml_output:
        print_yaml(run)
    else:
        tree = await provider.compute()
        format_run_summary(console, run, tree.hash)
    return run.passed

