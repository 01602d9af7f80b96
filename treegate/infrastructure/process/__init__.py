from treegate.infrastructure.process.process_executor import (
    ProcessExecutor,
    ProcessHandle,
    normalize_exit_code,
)

__all__ = ["ProcessExecutor", "ProcessHandle", "normalize_exit_code"]
