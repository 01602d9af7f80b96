from treegate.application.services.cache_lookup import find_cached_validation
from treegate.application.services.lifecycle import LifecycleGuard
from treegate.application.services.phase_scheduler import (
    ParallelScheduler,
    PhaseContext,
    PhaseOutcome,
    PhaseScheduler,
    SequentialScheduler,
    select_scheduler,
)
from treegate.application.services.process_registry import ProcessRegistry

__all__ = [
    "LifecycleGuard",
    "ParallelScheduler",
    "PhaseContext",
    "PhaseOutcome",
    "PhaseScheduler",
    "ProcessRegistry",
    "SequentialScheduler",
    "find_cached_validation",
    "select_scheduler",
]
