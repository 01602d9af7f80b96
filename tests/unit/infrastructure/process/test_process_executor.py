import asyncio
import os
import time
from pathlib import Path

import pytest

from treegate.infrastructure.process.process_executor import (
    ProcessExecutor,
    normalize_exit_code,
)


@pytest.fixture
def executor() -> ProcessExecutor:
    return ProcessExecutor()


class TestNormalizeExitCode:
    def test_none_becomes_one(self) -> None:
        assert normalize_exit_code(None) == 1

    def test_signal_becomes_128_plus_signum(self) -> None:
        assert normalize_exit_code(-15) == 143
        assert normalize_exit_code(-9) == 137

    def test_regular_codes_pass_through(self) -> None:
        assert normalize_exit_code(0) == 0
        assert normalize_exit_code(3) == 3


class TestProcessExecutor:
    async def test_streams_stdout_and_stderr_separately(self, executor: ProcessExecutor) -> None:
        out: list[str] = []
        err: list[str] = []

        handle = await executor.spawn("echo hello; echo oops >&2")
        exit_code = await executor.stream(handle, out.append, err.append)

        assert exit_code == 0
        assert "".join(out) == "hello\n"
        assert "".join(err) == "oops\n"

    async def test_exit_code_is_reported(self, executor: ProcessExecutor) -> None:
        handle = await executor.spawn("exit 7")
        exit_code = await executor.stream(handle, lambda _: None, lambda _: None)

        assert exit_code == 7

    async def test_env_and_cwd_are_applied(self, executor: ProcessExecutor, tmp_path: Path) -> None:
        out: list[str] = []

        handle = await executor.spawn(
            'echo "$TREEGATE_TEST_VAR"; pwd', env={"TREEGATE_TEST_VAR": "x1"}, cwd=tmp_path
        )
        await executor.stream(handle, out.append, lambda _: None)

        lines = "".join(out).splitlines()
        assert lines[0] == "x1"
        assert Path(lines[1]).resolve() == tmp_path.resolve()

    async def test_stdin_is_closed(self, executor: ProcessExecutor) -> None:
        handle = await executor.spawn("cat")

        exit_code = await asyncio.wait_for(
            executor.stream(handle, lambda _: None, lambda _: None), timeout=5
        )

        assert exit_code == 0

    async def test_missing_cwd_raises_oserror(self, executor: ProcessExecutor, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            await executor.spawn("true", cwd=tmp_path / "missing")

    async def test_spawned_process_leads_its_own_group(self, executor: ProcessExecutor) -> None:
        handle = await executor.spawn("sleep 5")
        try:
            assert os.getpgid(handle.pid) == handle.pid
        finally:
            await executor.terminate(handle)

    async def test_terminate_kills_whole_process_group(self, executor: ProcessExecutor) -> None:
        # The grandchild keeps the pipes open; only a group kill closes them
        handle = await executor.spawn("sleep 30 & sleep 30; wait")
        stream_task = asyncio.create_task(
            executor.stream(handle, lambda _: None, lambda _: None)
        )
        await asyncio.sleep(0.2)

        start = time.monotonic()
        await executor.terminate(handle)
        exit_code = await asyncio.wait_for(stream_task, timeout=5)

        assert exit_code == 143
        assert time.monotonic() - start < 5

    async def test_terminate_escalates_to_sigkill(self, executor: ProcessExecutor) -> None:
        handle = await executor.spawn("trap '' TERM; sleep 30")
        await asyncio.sleep(0.2)

        await executor.terminate(handle, grace_s=0.2, timeout_s=2.0)

        assert handle.returncode is not None
        assert normalize_exit_code(handle.returncode) == 137

    async def test_terminate_after_exit_is_a_no_op(self, executor: ProcessExecutor) -> None:
        handle = await executor.spawn("true")
        await executor.stream(handle, lambda _: None, lambda _: None)

        await executor.terminate(handle)

        assert handle.returncode == 0

    async def test_multibyte_characters_survive_chunking(self, executor: ProcessExecutor) -> None:
        out: list[str] = []

        handle = await executor.spawn("printf 'caf\\303\\251 \\342\\234\\223\\n'")
        await executor.stream(handle, out.append, lambda _: None)

        assert "".join(out) == "café ✓\n"
