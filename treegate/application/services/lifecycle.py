import asyncio
import signal
from types import TracebackType

from loguru import logger

from treegate.application.services.process_registry import ProcessRegistry
from treegate.infrastructure.process.process_executor import ProcessExecutor, ProcessHandle

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleGuard:
    """Kill every live child process group when the CLI is interrupted.

    On SIGINT/SIGTERM the guarded task is cancelled, so no further step
    starts, and every registered process group is terminated. The
    cancellation is absorbed on exit from the block; callers check
    `received_signal` / `exit_code`.

    Usage:
        async with LifecycleGuard(registry, executor) as guard:
            result = await runner.run(phases, options)
        if guard.received_signal:
            raise typer.Exit(guard.exit_code)
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        executor: ProcessExecutor,
        signals: tuple[signal.Signals, ...] = HANDLED_SIGNALS,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.signals = signals
        self.received_signal: signal.Signals | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[object] | None = None
        self._shutdown: asyncio.Task[None] | None = None
        self._active = False

    @property
    def exit_code(self) -> int:
        return 128 + self.received_signal.value if self.received_signal is not None else 0

    async def __aenter__(self) -> "LifecycleGuard":
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.current_task()
        self._active = True
        for sig in self.signals:
            self._loop.add_signal_handler(sig, self._on_signal, sig)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self._active = False
        if self._loop is not None:
            for sig in self.signals:
                self._loop.remove_signal_handler(sig)
        if self._shutdown is not None:
            await self._shutdown

        if exc_type is asyncio.CancelledError and self.received_signal is not None:
            if self._task is not None:
                self._task.uncancel()
            return True
        return False

    def _on_signal(self, sig: signal.Signals) -> None:
        if self._loop is None:
            return
        if self.received_signal is not None:
            logger.debug("Ignoring repeated {} while shutting down", sig.name)
            return
        self.received_signal = sig
        logger.warning(
            "Received {}, terminating {} running process group(s)",
            sig.name,
            len(self.registry),
        )
        # Snapshot before cancelling: cancelled steps discard their own handles
        self._shutdown = self._loop.create_task(self._terminate_all(self.registry.snapshot()))
        if self._active and self._task is not None:
            self._task.cancel()

    async def _terminate_all(self, handles: list[ProcessHandle]) -> None:
        await asyncio.gather(*(self.executor.terminate(handle) for handle in handles))
