from datetime import UTC, datetime

from pydantic import BaseModel, Field

from treegate.domain.value_objects import ErrorExtractorResult, OutputFiles


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StepResult(BaseModel, frozen=True):
    name: str
    command: str
    passed: bool
    exit_code: int
    duration_secs: float
    extraction: ErrorExtractorResult | None = None
    is_cached_result: bool | None = None
    output_files: OutputFiles | None = None


class PhaseResult(BaseModel, frozen=True):
    name: str
    passed: bool
    duration_secs: float
    steps: list[StepResult] = Field(default_factory=list)


class ValidationResult(BaseModel, frozen=True):
    """Outcome of one validation run over all configured phases.

    On failure `phases` holds only the phases that actually ran, the
    last of which is the failed one.
    """

    passed: bool
    timestamp: datetime = Field(default_factory=_utc_now)
    tree_hash: str
    summary: str
    failed_step: str | None = None
    phases: list[PhaseResult] = Field(default_factory=list)
    full_log_file: str | None = None
    is_cached_result: bool | None = None

    def step_results(self) -> list[StepResult]:
        return [step for phase in self.phases for step in phase.steps]
