"""Exception hierarchy for treegate.

Step failures are never exceptions: they are reported as data in
StepResult / ValidationResult. Exceptions are reserved for misuse
(invalid hashes, refs, namespaces) and infrastructure faults.
"""


class TreegateError(Exception):
    """Base class for all treegate errors."""


class ConfigError(TreegateError):
    """Configuration file is missing, unreadable or invalid."""


class GitCommandError(TreegateError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], exit_code: int, stderr: str) -> None:
        self.git_args = args
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"git {' '.join(args)} failed ({exit_code}): {stderr.strip()}")


class GitNotesError(TreegateError):
    """Base class for notes-ref misuse."""


class InvalidTreeHashError(GitNotesError):
    """Object name is not a raw hexadecimal hash."""


class InvalidRefError(GitNotesError):
    """Notes ref contains characters git or the shell would misinterpret."""


class ReservedNamespaceError(GitNotesError):
    """Bulk deletion was requested outside the treegate notes namespace."""


class NoteConflictError(TreegateError):
    """A concurrent writer updated the same note while we were writing."""

    def __init__(self, ref: str, tree_hash: str) -> None:
        self.ref = ref
        self.tree_hash = tree_hash
        super().__init__(f"Concurrent update of note {ref} on {tree_hash}")


class ValidationLockError(TreegateError):
    """Another validation already holds the lock for this directory."""
