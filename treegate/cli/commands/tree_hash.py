import asyncio

import typer
from rich.console import Console

from treegate.cli.formatters import format_tree_hash
from treegate.cli.theme import theme
from treegate.cli.utils import print_yaml, resolve_project_root
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider


def tree_hash(
    yaml_output: bool = typer.Option(False, "--yaml", help="Print hash and submodules as YAML"),
) -> None:
    """Print the content hash of the working tree, untracked files included."""
    if not asyncio.run(_tree_hash(yaml_output)):
        raise typer.Exit(1)


async def _tree_hash(yaml_output: bool) -> bool:
    console = Console(stderr=yaml_output)
    root, _ = await resolve_project_root()
    tree = await GitTreeHashProvider(root).compute()
    if not tree.is_known:
        console.print(f"[{theme.ERROR_BOLD}]Could not compute tree hash in[/] {root}")
        return False

    if yaml_output:
        print_yaml(tree)
    else:
        format_tree_hash(console, tree)
    return True
