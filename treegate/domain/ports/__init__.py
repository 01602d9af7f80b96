from treegate.domain.ports.extractor_port import ErrorExtractorPort
from treegate.domain.ports.tree_hash_port import TreeHashPort

__all__ = [
    "ErrorExtractorPort",
    "TreeHashPort",
]
