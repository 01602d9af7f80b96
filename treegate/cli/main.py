import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger

from treegate.cli.commands import history, run, state, tree_hash, validate
from treegate.infrastructure.persistence._paths import OutputPathBuilder


def get_log_dir() -> Path:
    return OutputPathBuilder().log_dir()


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> Path:
    """Configure loguru logging.

    Everything goes to a timestamped file under the temp log directory;
    `verbose` also mirrors it to stderr, never stdout.
    """
    logger.remove()

    if log_file is None:
        log_dir = get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"treegate-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"

    logger.add(
        log_file,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="10 MB",
        encoding="utf-8",
    )

    if verbose:
        logger.add(
            sys.stderr,
            format="{time:HH:mm:ss} | {level: <8} | {message}",
            level="DEBUG",
        )

    return log_file


app = typer.Typer(
    name="treegate",
    help="treegate - validation pipeline keyed by working-tree content",
    no_args_is_help=True,
)

app.command(name="validate")(validate.validate)
app.command(name="run")(run.run_command)
app.command(name="state")(state.show_state)
app.command(name="tree-hash")(tree_hash.tree_hash)

# History subcommand group
history_app = typer.Typer(help="Validation history stored in git notes")
history_app.command(name="list")(history.list_history)
history_app.command(name="show")(history.show_history)
history_app.command(name="prune")(history.prune_history)
history_app.command(name="health")(history.history_health)
app.add_typer(history_app, name="history")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logs on stderr", is_eager=True),
) -> None:
    """treegate - validation pipeline keyed by working-tree content."""
    setup_logging(verbose=verbose)


if __name__ == "__main__":
    app()
