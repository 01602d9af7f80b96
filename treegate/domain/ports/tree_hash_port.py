from typing import Protocol

from treegate.domain.value_objects import TreeHashResult


class TreeHashPort(Protocol):
    async def compute(self) -> TreeHashResult:
        """Compute the content hash of the working tree, submodules included."""
        ...
