from pathlib import Path

import aiofiles
from loguru import logger

from treegate.domain.value_objects import OutputFiles, OutputLine


async def write_output_files(
    directory: Path,
    stdout: str,
    stderr: str,
    lines: list[OutputLine],
) -> OutputFiles | None:
    """Persist a command's output for later inspection.

    stdout.log and stderr.log are written only when non-empty;
    combined.jsonl always holds the interleaved timestamped lines.
    Returns None (after logging a warning) if anything cannot be written.
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)

        stdout_path = directory / "stdout.log"
        stderr_path = directory / "stderr.log"
        combined_path = directory / "combined.jsonl"

        if stdout:
            async with aiofiles.open(stdout_path, "w", encoding="utf-8") as f:
                await f.write(stdout)
        if stderr:
            async with aiofiles.open(stderr_path, "w", encoding="utf-8") as f:
                await f.write(stderr)
        async with aiofiles.open(combined_path, "w", encoding="utf-8") as f:
            for line in lines:
                await f.write(line.model_dump_json() + "\n")
    except OSError as e:
        logger.warning("Could not write output files to {}: {}", directory, e)
        return None

    return OutputFiles(
        stdout=str(stdout_path) if stdout else None,
        stderr=str(stderr_path) if stderr else None,
        combined=str(combined_path),
    )


async def append_log(path: Path, text: str) -> bool:
    """Append to a plain-text log, returning False (with a warning) on failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await f.write(text)
    except OSError as e:
        logger.warning("Could not write log file {}: {}", path, e)
        return False
    return True
