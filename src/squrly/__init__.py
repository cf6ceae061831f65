"""
squrly - bracketed URL extraction, polite fetching and JSON record emission.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .crawler.http_client import HttpClient
from .parser import BracketTokenizer, extract_url
from .pipeline import UrlProcessor
from .protocols import OutputRecord

__all__ = [
    "__version__",
    "BracketTokenizer",
    "Config",
    "HttpClient",
    "OutputRecord",
    "UrlProcessor",
    "extract_url",
]
