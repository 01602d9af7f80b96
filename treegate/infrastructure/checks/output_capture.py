import re
from datetime import UTC, datetime

from treegate.domain.value_objects import OutputLine, OutputStream

# CSI sequences (colors, cursor movement), OSC sequences (titles, hyperlinks)
# terminated by BEL or ST, and two-byte escapes.
ANSI_PATTERN = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


class OutputCapture:
    """Collects a step's output as raw text and as timestamped lines.

    Chunks may split lines anywhere; partial lines are held per stream
    until a newline arrives or `close()` flushes them.
    """

    def __init__(self) -> None:
        self._raw: dict[OutputStream, list[str]] = {
            OutputStream.STDOUT: [],
            OutputStream.STDERR: [],
        }
        self._partial: dict[OutputStream, str] = {
            OutputStream.STDOUT: "",
            OutputStream.STDERR: "",
        }
        self.lines: list[OutputLine] = []

    def feed(self, stream: OutputStream, chunk: str) -> None:
        self._raw[stream].append(chunk)
        *complete, rest = (self._partial[stream] + chunk).split("\n")
        for line in complete:
            self._append_line(stream, line)
        self._partial[stream] = rest

    def close(self) -> None:
        for stream, rest in self._partial.items():
            if rest:
                self._append_line(stream, rest)
            self._partial[stream] = ""

    def raw(self, stream: OutputStream) -> str:
        return "".join(self._raw[stream])

    @property
    def stdout(self) -> str:
        return strip_ansi(self.raw(OutputStream.STDOUT))

    @property
    def stderr(self) -> str:
        return strip_ansi(self.raw(OutputStream.STDERR))

    @property
    def combined(self) -> str:
        return self.stdout + self.stderr

    def _append_line(self, stream: OutputStream, raw_line: str) -> None:
        self.lines.append(
            OutputLine(ts=_timestamp(), stream=stream, line=strip_ansi(raw_line.rstrip("\r")))
        )
