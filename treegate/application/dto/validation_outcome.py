from pydantic import BaseModel

from treegate.domain.entities import RecordResult, ValidationResult
from treegate.domain.value_objects import TreeHashResult


class ValidationOutcome(BaseModel):
    result: ValidationResult
    tree: TreeHashResult
    from_cache: bool = False
    record: RecordResult | None = None
    warnings: list[str] = []
