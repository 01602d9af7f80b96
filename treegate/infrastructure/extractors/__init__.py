from treegate.infrastructure.extractors.generic_extractor import GenericErrorExtractor

__all__ = ["GenericErrorExtractor"]
