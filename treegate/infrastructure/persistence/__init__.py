from treegate.infrastructure.persistence._paths import OutputPathBuilder, get_temp_root
from treegate.infrastructure.persistence.history_store import (
    DEFAULT_HISTORY_REF,
    HistoryStore,
    parse_history_note,
)
from treegate.infrastructure.persistence.output_files import append_log, write_output_files
from treegate.infrastructure.persistence.run_cache_store import RunCacheStore, encode_run_cache_key
from treegate.infrastructure.persistence.validation_lock import validation_lock

__all__ = [
    "DEFAULT_HISTORY_REF",
    "HistoryStore",
    "OutputPathBuilder",
    "RunCacheStore",
    "append_log",
    "encode_run_cache_key",
    "get_temp_root",
    "parse_history_note",
    "validation_lock",
    "write_output_files",
]
