from treegate.cli.formatters.progress_formatter import create_progress_callbacks, format_step_line
from treegate.cli.formatters.result_formatter import (
    format_failed_step,
    format_history_note,
    format_history_table,
    format_prune_results,
    format_run_summary,
    format_tree_hash,
    format_validation_outcome,
)

__all__ = [
    "create_progress_callbacks",
    "format_failed_step",
    "format_history_note",
    "format_history_table",
    "format_prune_results",
    "format_run_summary",
    "format_step_line",
    "format_tree_hash",
    "format_validation_outcome",
]
