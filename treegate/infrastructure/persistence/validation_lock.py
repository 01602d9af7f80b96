"""Single-instance guard for `treegate validate` in one directory.

Wraps filelock.FileLock so acquiring and releasing never block the
asyncio event loop.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from filelock import FileLock, Timeout
from loguru import logger

from treegate.domain.errors import ValidationLockError
from treegate.infrastructure.persistence._paths import OutputPathBuilder


@asynccontextmanager
async def validation_lock(
    directory: Path,
    wait: bool = False,
    paths: OutputPathBuilder | None = None,
) -> AsyncIterator[Path]:
    """Hold the per-directory validation lock for the duration of the block.

    Without `wait`, a lock held by another process raises ValidationLockError.

    Usage:
        async with validation_lock(repo_root):
            await runner.run(phases)
    """
    lock_path = (paths or OutputPathBuilder()).lock_path(directory)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    # Acquired and released from worker threads, so ownership must not be per-thread
    lock = FileLock(lock_path, thread_local=False)

    try:
        await asyncio.to_thread(lock.acquire, timeout=-1 if wait else 0)
    except Timeout as e:
        raise ValidationLockError(
            f"Another validation is already running in {directory} (lock: {lock_path})"
        ) from e

    logger.debug("Acquired validation lock {}", lock_path)
    try:
        yield lock_path
    finally:
        await asyncio.to_thread(lock.release)
