from abc import ABC, abstractmethod

from treegate.domain.value_objects import ErrorExtractorResult


class ErrorExtractorPort(ABC):
    """Port for turning raw tool output into a structured error summary."""

    @abstractmethod
    def extract(self, output: str, step_name: str | None = None) -> ErrorExtractorResult:
        """Extract errors from combined stdout/stderr of a failed step."""
