"""
Builds output records from fetched page bodies.
"""

from __future__ import annotations

import hashlib
import re
from typing import Optional

import structlog
from selectolax.lexbor import LexborHTMLParser

from squrly.protocols import OutputRecord

logger = structlog.get_logger(__name__)

# First e-mail-shaped substring anywhere in the raw body.
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


class ResultBuilder:
    """Extracts title and hashed e-mail from an HTML body."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("secret must be a non-empty string")
        self._secret = secret

    def hash_email(self, email: str) -> str:
        """Hex SHA-256 of ``email + secret``."""
        return hashlib.sha256((email + self._secret).encode("utf-8")).hexdigest()

    def extract_title(self, body: str) -> Optional[str]:
        """Trimmed text of the first ``<title>``, or None when absent or blank."""
        if not body:
            return None
        node = LexborHTMLParser(body).css_first("title")
        if node is None:
            return None
        title = node.text().strip()
        return title or None

    def extract_email(self, body: str) -> Optional[str]:
        match = EMAIL_PATTERN.search(body)
        return match.group(0) if match else None

    def build(self, url: str, body: str) -> OutputRecord:
        title = self.extract_title(body)
        email = self.extract_email(body)
        logger.debug("Record built", url=url, has_title=title is not None, has_email=email is not None)
        return OutputRecord(
            url=url,
            title=title,
            email_hash=self.hash_email(email) if email else None,
        )

    def failed(self, url: str) -> OutputRecord:
        """URL-only record for a URL whose every attempt failed."""
        return OutputRecord(url=url)
