from pydantic import BaseModel

UNKNOWN_TREE_HASH = "unknown"


class TreeHashResult(BaseModel, frozen=True):
    """Content identity of the working tree.

    `hash` is the git tree object of the root repository including
    untracked (non-ignored) files. `submodule_hashes` maps submodule path
    to its own tree hash, or is None when the repository has no
    initialized submodules.
    """

    hash: str
    submodule_hashes: dict[str, str] | None = None

    @property
    def is_known(self) -> bool:
        return self.hash != UNKNOWN_TREE_HASH
