from treegate.infrastructure.git.git_notes import GitNotesAdapter, NoteWriteStatus
from treegate.infrastructure.git.repo_root import get_repo_root, get_repo_state
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider

__all__ = [
    "GitNotesAdapter",
    "GitTreeHashProvider",
    "NoteWriteStatus",
    "get_repo_root",
    "get_repo_state",
]
