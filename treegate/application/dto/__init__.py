from treegate.application.dto.history_entry import HistoryEntry
from treegate.application.dto.validation_outcome import ValidationOutcome

__all__ = [
    "HistoryEntry",
    "ValidationOutcome",
]
