from dataclasses import dataclass
from datetime import datetime

from treegate.domain.entities import HistoryNote, ValidationResult


@dataclass(frozen=True)
class FlakyStep:
    name: str
    failed_at: datetime
    passed_at: datetime


def find_flaky_steps(note: HistoryNote | None, current: ValidationResult) -> list[FlakyStep]:
    """Steps that failed in the latest failed run on this tree but pass now."""
    if note is None or not note.runs or not current.passed:
        return []

    newest_first = sorted(note.runs, key=lambda run: run.timestamp, reverse=True)
    failed_run = next((run for run in newest_first if not run.passed), None)
    if failed_run is None:
        return []

    previous = {step.name: step for step in failed_run.result.step_results()}
    flaky: list[FlakyStep] = []
    for step in current.step_results():
        before = previous.get(step.name)
        if before is not None and not before.passed and step.passed:
            flaky.append(
                FlakyStep(
                    name=step.name,
                    failed_at=failed_run.timestamp,
                    passed_at=current.timestamp,
                )
            )
    return flaky


def format_flakiness_warning(flaky_steps: list[FlakyStep]) -> str | None:
    if not flaky_steps:
        return None

    lines = [
        "Validation passed, but failed on a previous run without code changes.",
        "",
        "    Failed steps from previous run:",
    ]
    for step in flaky_steps:
        lines.append(
            f"    - {step.name} (failed {step.failed_at.isoformat()}, "
            f"passed {step.passed_at.isoformat()})"
        )
    lines.extend(
        [
            "",
            "    This may indicate flaky tests or non-deterministic behaviour.",
        ]
    )
    return "\n".join(lines)
