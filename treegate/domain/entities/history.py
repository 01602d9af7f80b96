from datetime import datetime

from pydantic import BaseModel, Field

from treegate.domain.entities.validation_result import ValidationResult
from treegate.domain.value_objects import ErrorExtractorResult


class ValidationRun(BaseModel, frozen=True):
    id: str
    timestamp: datetime
    duration: int = Field(ge=0, description="Sum of phase durations in milliseconds")
    passed: bool
    branch: str
    head_commit: str
    uncommitted_changes: bool
    submodule_hashes: dict[str, str] | None = None
    result: ValidationResult


class HistoryNote(BaseModel, frozen=True):
    """All recorded runs for one tree hash, oldest first."""

    tree_hash: str
    runs: list[ValidationRun] = Field(default_factory=list)


class RunCacheNote(BaseModel, frozen=True):
    tree_hash: str
    command: str
    workdir: str
    timestamp: datetime
    exit_code: int
    duration: int
    extraction: ErrorExtractorResult | None = None


class RecordResult(BaseModel, frozen=True):
    recorded: bool
    tree_hash: str
    reason: str | None = None


class PruneResult(BaseModel, frozen=True):
    notes_pruned: int = 0
    runs_pruned: int = 0
    notes_remaining: int = 0
    pruned_tree_hashes: list[str] = Field(default_factory=list)


class HealthCheckResult(BaseModel, frozen=True):
    total_notes: int
    old_notes_count: int
    should_warn: bool
    warning_message: str | None = None
