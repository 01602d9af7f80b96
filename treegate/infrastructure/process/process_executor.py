import asyncio
import codecs
import os
import signal
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

OutputCallback = Callable[[str], None]

TERMINATE_GRACE_S = 1.0
TERMINATE_TIMEOUT_S = 2.0
_READ_CHUNK = 64 * 1024


def normalize_exit_code(returncode: int | None) -> int:
    """Map a raw returncode to a shell-style exit code.

    None (no status reported) becomes 1. A negative returncode means the
    process was killed by that signal and becomes 128 + signum.
    """
    if returncode is None:
        return 1
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


@dataclass
class ProcessHandle:
    command: str
    process: asyncio.subprocess.Process

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode


class ProcessExecutor:
    """Spawns shell commands in their own process group and streams output."""

    async def spawn(
        self,
        command: str,
        env: dict[str, str] | None = None,
        cwd: str | Path | None = None,
    ) -> ProcessHandle:
        """Start `command` through the shell.

        Raises OSError when the process cannot be created (e.g. missing cwd).
        """
        full_env = dict(os.environ)
        if env:
            full_env.update(env)

        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,  # Own process group so the whole tree can be killed
        )
        logger.debug("Spawned pid {}: {}", proc.pid, command)
        return ProcessHandle(command=command, process=proc)

    async def stream(
        self,
        handle: ProcessHandle,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
    ) -> int:
        """Pump both pipes until EOF, then return the normalized exit code."""
        proc = handle.process
        pumps = []
        if proc.stdout is not None:
            pumps.append(_pump(proc.stdout, on_stdout))
        if proc.stderr is not None:
            pumps.append(_pump(proc.stderr, on_stderr))
        await asyncio.gather(*pumps)
        returncode = await proc.wait()
        return normalize_exit_code(returncode)

    async def terminate(
        self,
        handle: ProcessHandle,
        grace_s: float = TERMINATE_GRACE_S,
        timeout_s: float = TERMINATE_TIMEOUT_S,
    ) -> None:
        """SIGTERM the process group, SIGKILL after `grace_s`, stop waiting at `timeout_s`.

        A group that is already gone is not an error.
        """
        # The child is a session leader, so its pid is also the process group id
        pgid = handle.pid
        if not _signal_group(pgid, signal.SIGTERM):
            return

        if await _wait_exit(handle, grace_s):
            return

        logger.debug("Process group {} ignored SIGTERM, sending SIGKILL", pgid)
        if not _signal_group(pgid, signal.SIGKILL):
            return

        if not await _wait_exit(handle, max(timeout_s - grace_s, 0.0)):
            logger.warning("Process group {} did not exit after SIGKILL", pgid)


async def _pump(reader: asyncio.StreamReader, callback: OutputCallback) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await reader.read(_READ_CHUNK)
        if not chunk:
            tail = decoder.decode(b"", final=True)
            if tail:
                callback(tail)
            return
        text = decoder.decode(chunk)
        if text:
            callback(text)


def _signal_group(pgid: int, sig: signal.Signals) -> bool:
    try:
        os.killpg(pgid, sig)
    except (ProcessLookupError, OSError):
        # Process group already terminated
        return False
    return True


async def _wait_exit(handle: ProcessHandle, timeout_s: float) -> bool:
    try:
        await asyncio.wait_for(asyncio.shield(handle.process.wait()), timeout=timeout_s)
    except TimeoutError:
        return False
    return True
