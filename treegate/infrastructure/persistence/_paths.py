import re
import tempfile
from datetime import datetime
from pathlib import Path

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def get_temp_root() -> Path:
    """Return <system tmp>/treegate, the root for logs, outputs and locks."""
    return Path(tempfile.gettempdir()) / "treegate"


def sanitize_path_component(value: str, max_length: int = 50) -> str:
    return _UNSAFE_CHARS.sub("-", value).strip("-")[:max_length]


class OutputPathBuilder:
    def __init__(self, root: Path | None = None) -> None:
        self.root = root or get_temp_root()

    def output_dir(self, scope: str, tree_hash: str, label: str, now: datetime) -> Path:
        """Directory for one command's output files; `scope` is "steps" or "runs"."""
        return self._scoped_dir(scope, tree_hash, now, label)

    def validation_log(self, tree_hash: str, now: datetime) -> Path:
        return self._scoped_dir("validations", tree_hash, now).with_suffix(".log")

    def log_dir(self) -> Path:
        return self.root / "logs"

    def lock_path(self, directory: Path) -> Path:
        encoded = str(directory.resolve()).replace("\\", "_").replace("/", "_")
        return self.root / "locks" / f"{encoded}.lock"

    def _scoped_dir(self, kind: str, tree_hash: str, now: datetime, suffix: str = "") -> Path:
        name = f"{tree_hash[:6]}-{now.strftime('%H-%M-%S')}"
        slug = sanitize_path_component(suffix)
        if slug:
            name = f"{name}-{slug}"
        return self.root / kind / now.strftime("%Y-%m-%d") / name
