from treegate.domain.entities.history import (
    HealthCheckResult,
    HistoryNote,
    PruneResult,
    RecordResult,
    RunCacheNote,
    ValidationRun,
)
from treegate.domain.entities.run_result import RunResult
from treegate.domain.entities.validation_result import PhaseResult, StepResult, ValidationResult

__all__ = [
    "HealthCheckResult",
    "HistoryNote",
    "PhaseResult",
    "PruneResult",
    "RecordResult",
    "RunCacheNote",
    "RunResult",
    "StepResult",
    "ValidationResult",
    "ValidationRun",
]
