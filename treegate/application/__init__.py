from treegate.application.validation_runner import (
    RunnerCallbacks,
    RunnerOptions,
    ValidationRunner,
)

__all__ = [
    "RunnerCallbacks",
    "RunnerOptions",
    "ValidationRunner",
]
