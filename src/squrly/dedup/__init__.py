"""
URL deduplication.
"""

from .url_dedup import UrlDeduplicator

__all__ = ["UrlDeduplicator"]
