"""
Canonical URL selection from a bracket group.
"""

from __future__ import annotations

import re
from typing import List, Optional

# Optional http(s) scheme, then localhost[:port] or a dotted host ending in
# an alphabetic label of two or more letters, then an optional path/query.
URL_PATTERN = re.compile(
    r"(?:https?://)?"
    r"(?:localhost(?::[0-9]+)?|(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,})"
    r"(?:/[^\s]*)?"
)

DEFAULT_SCHEME = "https://"


def strip_brackets(group: str) -> str:
    """Remove one leading ``[`` and one trailing ``]`` when both are present."""
    if len(group) >= 2 and group.startswith("[") and group.endswith("]"):
        return group[1:-1]
    return group


def find_urls(text: str) -> List[str]:
    """All URL-shaped tokens in ``text``, left to right."""
    return [match.group(0) for match in URL_PATTERN.finditer(text)]


def canonicalize(token: str) -> str:
    if token.startswith(("http://", "https://")):
        return token
    return f"{DEFAULT_SCHEME}{token}"


def extract_url(group: str) -> Optional[str]:
    """
    Return the canonical URL of a bracket group, or None.

    Only the last URL-shaped token counts; earlier ones in the same group
    are discarded.
    """
    urls = find_urls(strip_brackets(group))
    if not urls:
        return None
    return canonicalize(urls[-1])
