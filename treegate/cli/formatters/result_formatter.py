from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from treegate.application.dto import HistoryEntry, ValidationOutcome
from treegate.cli.theme import theme
from treegate.domain.entities import HistoryNote, PruneResult, StepResult, ValidationRun
from treegate.domain.value_objects import TreeHashResult


def format_validation_outcome(console: Console, outcome: ValidationOutcome) -> None:
    result = outcome.result
    short_hash = outcome.tree.hash[:12]

    if outcome.from_cache:
        console.print(
            f"\n[{theme.CACHED}]✓ Validation already passed for tree {short_hash}[/] "
            f"[{theme.DIM}](cached {result.timestamp.isoformat()})[/]"
        )
    elif result.passed:
        console.print(f"\n[{theme.SUCCESS_BOLD}]✓ {result.summary}[/] [{theme.DIM}]{short_hash}[/]")
    else:
        console.print(f"\n[{theme.ERROR_BOLD}]✗ {result.summary}[/] [{theme.DIM}]{short_hash}[/]")
        failed = next((s for s in result.step_results() if s.name == result.failed_step), None)
        if failed is not None:
            format_failed_step(console, failed)

    if result.full_log_file:
        console.print(f"[{theme.DIM}]Full log: {result.full_log_file}[/]")

    for warning in outcome.warnings:
        console.print(Panel(escape(warning), border_style=theme.WARNING))


def format_failed_step(console: Console, step: StepResult) -> None:
    lines = [
        f"[{theme.HEADER}]Command:[/] {escape(step.command)}",
        f"[{theme.HEADER}]Exit code:[/] {step.exit_code}",
    ]
    extraction = step.extraction
    if extraction is not None:
        lines.append(f"[{theme.HEADER}]Summary:[/] {escape(extraction.summary)}")
        for error in extraction.errors[:10]:
            location = ""
            if error.file:
                location = f"{error.file}:{error.line}" if error.line else error.file
                location = f"[{theme.INFO}]{escape(location)}[/] "
            lines.append(f"  • {location}{escape(error.message)}")
        if not extraction.errors and extraction.error_summary:
            lines.append("")
            lines.append(escape(extraction.error_summary))
    if step.output_files and step.output_files.combined:
        lines.append(f"[{theme.DIM}]Output: {step.output_files.combined}[/]")

    console.print(Panel("\n".join(lines), title=step.name, border_style=theme.ERROR))


def format_tree_hash(console: Console, tree: TreeHashResult) -> None:
    console.print(tree.hash)
    for path, sub_hash in sorted((tree.submodule_hashes or {}).items()):
        console.print(f"  [{theme.DIM}]{path}[/] {sub_hash}")


def format_run_summary(console: Console, run: ValidationRun, tree_hash: str) -> None:
    table = Table(title=f"Validation state {tree_hash[:12]}")
    table.add_column("Property", style=theme.INFO)
    table.add_column("Value")

    status = f"[{theme.SUCCESS}]passed[/]" if run.passed else f"[{theme.ERROR}]failed[/]"
    table.add_row("Status", status)
    table.add_row("Run", run.id)
    table.add_row("Recorded", run.timestamp.isoformat())
    table.add_row("Branch", run.branch)
    table.add_row("HEAD", run.head_commit[:12])
    table.add_row("Uncommitted changes", "yes" if run.uncommitted_changes else "no")
    table.add_row("Duration", f"{run.duration / 1000:.1f}s")
    if run.result.failed_step:
        table.add_row("Failed step", run.result.failed_step)

    console.print(table)


def format_history_table(console: Console, entries: list[HistoryEntry]) -> None:
    table = Table(title="Validation history")
    table.add_column("Tree", style=theme.TABLE_HASH)
    table.add_column("When", style=theme.TABLE_SECONDARY)
    table.add_column("Branch")
    table.add_column("Result")
    table.add_column("Duration", justify="right")

    for entry in entries:
        run = entry.run
        result = f"[{theme.SUCCESS}]pass[/]" if run.passed else f"[{theme.ERROR}]fail[/]"
        if not run.passed and run.result.failed_step:
            result += f" [{theme.DIM}]({escape(run.result.failed_step)})[/]"
        table.add_row(
            entry.tree_hash[:12],
            run.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            escape(run.branch),
            result,
            f"{run.duration / 1000:.1f}s",
        )

    console.print(table)


def format_history_note(console: Console, note: HistoryNote) -> None:
    console.print(f"[{theme.HEADER}]Tree {note.tree_hash}[/] [{theme.DIM}]({len(note.runs)} runs)[/]")
    for run in reversed(note.runs):
        status = f"[{theme.SUCCESS}]pass[/]" if run.passed else f"[{theme.ERROR}]fail[/]"
        console.print(
            f"  {status} {run.id} [{theme.DIM}]{run.timestamp.isoformat()} {run.branch}[/]"
        )


def format_prune_results(console: Console, results: dict[str, PruneResult], dry_run: bool) -> None:
    verb = "Would prune" if dry_run else "Pruned"
    if not results:
        console.print(f"[{theme.DIM}]Nothing selected for pruning[/]")
        return
    for name, result in results.items():
        console.print(
            f"{verb} {result.notes_pruned} {name} notes "
            f"[{theme.DIM}]({result.runs_pruned} runs, {result.notes_remaining} remaining)[/]"
        )
