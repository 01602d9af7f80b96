from treegate.application.use_cases.history_queries import (
    GetValidationState,
    ListHistory,
    ShowHistory,
)
from treegate.application.use_cases.prune_history import PruneHistory
from treegate.application.use_cases.run_command import RunCommand
from treegate.application.use_cases.run_validation import RunValidation

__all__ = [
    "GetValidationState",
    "ListHistory",
    "PruneHistory",
    "RunCommand",
    "RunValidation",
    "ShowHistory",
]
