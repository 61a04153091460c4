from .extractor import TextExtractor

__all__ = ["TextExtractor"]
