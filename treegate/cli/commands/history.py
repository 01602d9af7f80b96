import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from treegate.application.use_cases.history_queries import ListHistory, ShowHistory
from treegate.application.use_cases.prune_history import PruneHistory
from treegate.cli.formatters import format_history_note, format_history_table, format_prune_results
from treegate.cli.theme import theme
from treegate.cli.utils import history_ref, print_yaml, print_yaml_list, resolve_project_root
from treegate.domain.errors import InvalidTreeHashError
from treegate.infrastructure.git.git_notes import GitNotesAdapter
from treegate.infrastructure.persistence.history_store import HistoryStore
from treegate.infrastructure.persistence.run_cache_store import RunCacheStore


async def _open_history(console: Console) -> tuple[Path, HistoryStore] | None:
    root, in_repo = await resolve_project_root()
    if not in_repo:
        console.print(f"[{theme.ERROR_BOLD}]Not a git repository:[/] {root}")
        return None
    return root, HistoryStore(GitNotesAdapter(root), ref=history_ref(root))


def list_history(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of runs to show"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Only runs on this branch"),
    yaml_output: bool = typer.Option(False, "--yaml", help="Print runs as YAML"),
) -> None:
    """List recorded validation runs, newest first."""
    if not asyncio.run(_list_history(limit, branch, yaml_output)):
        raise typer.Exit(1)


async def _list_history(limit: int, branch: str | None, yaml_output: bool) -> bool:
    console = Console(stderr=yaml_output)
    opened = await _open_history(console)
    if opened is None:
        return False
    _, history = opened

    entries = await ListHistory(history).execute(limit=limit, branch=branch)
    if yaml_output:
        print_yaml_list(entries)
    elif not entries:
        console.print(f"[{theme.DIM}]No validation history recorded[/]")
    else:
        format_history_table(console, entries)
    return True


def show_history(
    tree_hash: str = typer.Argument(..., help="Tree hash to show"),
    yaml_output: bool = typer.Option(False, "--yaml", help="Print the note as YAML"),
) -> None:
    """Show every recorded run for one tree hash."""
    if not asyncio.run(_show_history(tree_hash, yaml_output)):
        raise typer.Exit(1)


async def _show_history(tree_hash: str, yaml_output: bool) -> bool:
    console = Console(stderr=yaml_output)
    opened = await _open_history(console)
    if opened is None:
        return False
    _, history = opened

    try:
        note = await ShowHistory(history).execute(tree_hash)
    except InvalidTreeHashError as e:
        console.print(f"[{theme.ERROR_BOLD}]{e}[/]")
        return False

    if note is None:
        console.print(f"[{theme.WARNING}]No history for tree {tree_hash}[/]")
        return False

    if yaml_output:
        print_yaml(note)
    else:
        format_history_note(console, note)
    return True


def prune_history(
    older_than: int | None = typer.Option(
        None, "--older-than", help="Remove notes whose oldest run is older than N days", min=1
    ),
    prune_all: bool = typer.Option(False, "--all", help="Remove all validation history"),
    run_cache: bool = typer.Option(False, "--run-cache", help="Also remove cached run results"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed"),
) -> None:
    """Remove old validation history notes."""
    if older_than is not None and prune_all:
        raise typer.BadParameter("--older-than and --all are mutually exclusive")
    if older_than is None and not prune_all and not run_cache:
        raise typer.BadParameter("Specify --older-than, --all or --run-cache")
    if not asyncio.run(_prune_history(older_than, prune_all, run_cache, dry_run)):
        raise typer.Exit(1)


async def _prune_history(
    older_than: int | None, prune_all: bool, run_cache: bool, dry_run: bool
) -> bool:
    console = Console()
    opened = await _open_history(console)
    if opened is None:
        return False
    root, history = opened

    results = await PruneHistory(history, RunCacheStore(GitNotesAdapter(root))).execute(
        older_than_days=older_than,
        prune_all=prune_all,
        include_run_cache=run_cache,
        dry_run=dry_run,
    )
    format_prune_results(console, results, dry_run)
    return True


def history_health(
    warn_after_days: int = typer.Option(30, "--days", help="Age that counts as old", min=1),
    warn_after_count: int = typer.Option(1000, "--count", help="Note count that counts as many", min=1),
) -> None:
    """Check whether validation history needs pruning."""
    if not asyncio.run(_history_health(warn_after_days, warn_after_count)):
        raise typer.Exit(1)


async def _history_health(warn_after_days: int, warn_after_count: int) -> bool:
    console = Console()
    opened = await _open_history(console)
    if opened is None:
        return False
    _, history = opened

    health = await history.check_health(warn_after_days, warn_after_count)
    console.print(
        f"[{theme.HEADER}]{health.total_notes}[/] history notes, "
        f"[{theme.HEADER}]{health.old_notes_count}[/] older than {warn_after_days} days"
    )
    if health.should_warn and health.warning_message:
        console.print(escape(health.warning_message), style=theme.WARNING)
    else:
        console.print(f"[{theme.SUCCESS}]History is healthy[/]")
    return True
