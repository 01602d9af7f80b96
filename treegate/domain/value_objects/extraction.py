from typing import Any

from pydantic import BaseModel


class ExtractedError(BaseModel, frozen=True):
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    code: str | None = None
    severity: str | None = None


class ErrorExtractorResult(BaseModel, frozen=True):
    """Structured summary of a failing step's output."""

    summary: str
    total_errors: int = 0
    errors: list[ExtractedError] = []
    error_summary: str | None = None
    guidance: str | None = None
    metadata: dict[str, Any] | None = None
