from enum import Enum

from pydantic import BaseModel


class OutputStream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class OutputLine(BaseModel, frozen=True):
    ts: str
    stream: OutputStream
    line: str


class OutputFiles(BaseModel, frozen=True):
    stdout: str | None = None
    stderr: str | None = None
    combined: str | None = None
