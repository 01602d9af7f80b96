from treegate.domain.entities import ValidationRun

DEFAULT_MAX_RUNS_PER_TREE = 10


def merge_runs(
    existing: list[ValidationRun],
    incoming: list[ValidationRun],
    max_runs: int = DEFAULT_MAX_RUNS_PER_TREE,
) -> list[ValidationRun]:
    """Append incoming runs after existing ones.

    A run is skipped only when an identical record is already present, so
    rewriting the same run twice is idempotent while two different runs
    that happen to share an id are both kept. Keeps only the newest
    `max_runs` entries.
    """
    merged = list(existing)
    for run in incoming:
        if run in merged:
            continue
        merged.append(run)
    if max_runs > 0 and len(merged) > max_runs:
        merged = merged[-max_runs:]
    return merged
