"""CLI utility functions."""

import sys
from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from treegate.domain.errors import ConfigError
from treegate.infrastructure.config.config_loader import resolve_config
from treegate.infrastructure.git.repo_root import get_repo_root
from treegate.infrastructure.persistence.history_store import DEFAULT_HISTORY_REF
from treegate.infrastructure.utils.yaml_io import dump_yaml, yaml_document


def print_yaml(model: BaseModel) -> None:
    """Write a model to stdout as a `---`-prefixed YAML document.

    Nothing else may be written to stdout in YAML mode, so callers that
    nest treegate inside a validation step can parse the output.
    """
    sys.stdout.write(yaml_document(model))
    sys.stdout.flush()


def print_yaml_list(models: Sequence[BaseModel]) -> None:
    data = [model.model_dump(mode="json", exclude_none=True) for model in models]
    sys.stdout.write("---\n" + dump_yaml(data))
    sys.stdout.flush()


async def resolve_project_root(cwd: Path | None = None) -> tuple[Path, bool]:
    """Return (project root, inside a git repository)."""
    cwd = (cwd or Path.cwd()).resolve()
    repo_root = await get_repo_root(cwd)
    if repo_root is None:
        return cwd, False
    return repo_root, True


def history_ref(root: Path) -> str:
    """Configured history ref, or the default when no usable config exists."""
    try:
        return resolve_config(root).history.git_notes.ref
    except ConfigError as e:
        logger.debug("Using default history ref: {}", e)
        return DEFAULT_HISTORY_REF
