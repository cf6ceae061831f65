"""
Result extraction from fetched pages.
"""

from .result_builder import EMAIL_PATTERN, ResultBuilder

__all__ = ["EMAIL_PATTERN", "ResultBuilder"]
