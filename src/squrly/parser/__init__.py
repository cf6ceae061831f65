"""
Text-side of the pipeline: bracket tokenizing and URL selection.
"""

from .tokenizer import BracketTokenizer, aiter_bracket_groups, iter_bracket_groups
from .url_extractor import URL_PATTERN, extract_url

__all__ = [
    "BracketTokenizer",
    "URL_PATTERN",
    "aiter_bracket_groups",
    "extract_url",
    "iter_bracket_groups",
]
