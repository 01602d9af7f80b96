def submodule_hashes_match(
    recorded: dict[str, str] | None,
    current: dict[str, str] | None,
) -> bool:
    """Exact submodule-state parity between a recorded run and the worktree.

    Both absent matches; exactly one absent never matches; otherwise the
    key sets and every per-path hash must be equal.
    """
    if recorded is None and current is None:
        return True
    if recorded is None or current is None:
        return False
    if sorted(recorded) != sorted(current):
        return False
    return all(recorded[path] == current[path] for path in recorded)
