from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from treegate.domain.errors import ConfigError
from treegate.domain.services.history_merge import DEFAULT_MAX_RUNS_PER_TREE
from treegate.domain.value_objects import ValidationPhase
from treegate.infrastructure.persistence.history_store import (
    DEFAULT_HISTORY_REF,
    DEFAULT_WARN_AFTER_COUNT,
    DEFAULT_WARN_AFTER_DAYS,
)

CONFIG_FILENAMES = ("treegate.config.yaml", "treegate.config.yml")


class ValidationSettings(BaseModel, frozen=True):
    fail_fast: bool | None = Field(
        default=None, description="Overrides every phase's fail_fast when set"
    )
    phases: list[ValidationPhase] = Field(min_length=1)


class GitNotesSettings(BaseModel, frozen=True):
    ref: str = DEFAULT_HISTORY_REF
    max_runs_per_tree: int = Field(default=DEFAULT_MAX_RUNS_PER_TREE, ge=1)


class RetentionSettings(BaseModel, frozen=True):
    warn_after_days: int = Field(default=DEFAULT_WARN_AFTER_DAYS, ge=1)
    warn_after_count: int = Field(default=DEFAULT_WARN_AFTER_COUNT, ge=1)


class HistorySettings(BaseModel, frozen=True):
    enabled: bool = True
    git_notes: GitNotesSettings = GitNotesSettings()
    retention: RetentionSettings = RetentionSettings()


class LockingSettings(BaseModel, frozen=True):
    enabled: bool = True


class TreegateConfig(BaseModel, frozen=True):
    validation: ValidationSettings
    env: dict[str, str] = {}
    history: HistorySettings = HistorySettings()
    locking: LockingSettings = LockingSettings()


def find_config_file(directory: Path) -> Path | None:
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path) -> TreegateConfig:
    """Parse and validate a treegate config file.

    Raises ConfigError with every offending field path on invalid input.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} must be a mapping")

    try:
        config = TreegateConfig.model_validate(raw)
    except ValidationError as e:
        problems = "\n".join(
            f"  - {'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid config {path}:\n{problems}") from e

    logger.debug("Loaded config {} with {} phases", path, len(config.validation.phases))
    return config


def resolve_config(directory: Path, explicit: Path | None = None) -> TreegateConfig:
    path = explicit or find_config_file(directory)
    if path is None:
        raise ConfigError(
            f"No config found in {directory} (expected one of: {', '.join(CONFIG_FILENAMES)})"
        )
    return load_config(path)
