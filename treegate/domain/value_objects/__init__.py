from treegate.domain.value_objects.extraction import ErrorExtractorResult, ExtractedError
from treegate.domain.value_objects.output_types import OutputFiles, OutputLine, OutputStream
from treegate.domain.value_objects.tree_hash import UNKNOWN_TREE_HASH, TreeHashResult
from treegate.domain.value_objects.validation_config import ValidationPhase, ValidationStep

__all__ = [
    "ErrorExtractorResult",
    "ExtractedError",
    "OutputFiles",
    "OutputLine",
    "OutputStream",
    "TreeHashResult",
    "UNKNOWN_TREE_HASH",
    "ValidationPhase",
    "ValidationStep",
]
