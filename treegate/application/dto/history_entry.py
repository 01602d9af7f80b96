from pydantic import BaseModel

from treegate.domain.entities import ValidationRun


class HistoryEntry(BaseModel):
    """One recorded run together with the tree it was recorded against."""

    tree_hash: str
    run: ValidationRun
