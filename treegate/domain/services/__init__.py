from treegate.domain.services.flakiness_detector import (
    FlakyStep,
    find_flaky_steps,
    format_flakiness_warning,
)
from treegate.domain.services.history_merge import DEFAULT_MAX_RUNS_PER_TREE, merge_runs
from treegate.domain.services.submodule_matcher import submodule_hashes_match

__all__ = [
    "DEFAULT_MAX_RUNS_PER_TREE",
    "FlakyStep",
    "find_flaky_steps",
    "format_flakiness_warning",
    "merge_runs",
    "submodule_hashes_match",
]
