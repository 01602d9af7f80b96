from treegate.infrastructure.process.process_executor import ProcessHandle


class ProcessRegistry:
    """Live child processes of one validation run.

    Schedulers add a handle when its process spawns and discard it when
    the process closes. Everyone else only reads snapshots.
    """

    def __init__(self) -> None:
        self._handles: dict[int, ProcessHandle] = {}

    def add(self, handle: ProcessHandle) -> None:
        self._handles[handle.pid] = handle

    def discard(self, handle: ProcessHandle) -> None:
        if self._handles.get(handle.pid) is handle:
            del self._handles[handle.pid]

    def snapshot(self) -> list[ProcessHandle]:
        return list(self._handles.values())

    def __len__(self) -> int:
        return len(self._handles)
