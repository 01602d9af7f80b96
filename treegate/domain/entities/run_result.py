from datetime import UTC, datetime

from pydantic import BaseModel, Field

from treegate.domain.value_objects import ErrorExtractorResult, OutputFiles


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RunResult(BaseModel, frozen=True):
    """Outcome of `treegate run <command>`, printed as a YAML document.

    Validation steps that wrap `treegate run` are recognised by this
    shape so the outer run can reuse the inner extraction.
    """

    command: str
    exit_code: int
    duration_secs: float
    timestamp: datetime = Field(default_factory=_utc_now)
    tree_hash: str
    extraction: ErrorExtractorResult | None = None
    is_cached_result: bool | None = None
    output_files: OutputFiles | None = None
