"""Text normalization, keyword matching, and cache-key digests for CrisisFusion."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from typing import Iterable


def normalize_text(text: str) -> str:
    """Normalize Unicode text to NFC form, strip control characters and extra whitespace.

    Args:
        text: Input string.

    Returns:
        Normalized plain text string.
    """
    text = unicodedata.normalize("NFC", text)
    # Remove control characters (except newlines and tabs)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring OR-match of keywords against text.

    Args:
        text: Text to search.
        keywords: Candidate substrings. Blank keywords never match.

    Returns:
        True if at least one keyword occurs in text.
    """
    lowered = text.lower()
    return any(kw and kw.lower() in lowered for kw in keywords)


def matches_keywords(text: str, keywords: Iterable[str]) -> bool:
    """Keyword filter where an empty keyword list means "no filtering"."""
    keywords = list(keywords)
    if not keywords:
        return True
    return contains_any(text, keywords)


def text_digest(text: str, length: int = 32) -> str:
    """Stable hex digest of a string, used to build cache keys.

    Args:
        text: Input string (hashed as UTF-8).
        length: Number of hex characters to keep.

    Returns:
        Truncated SHA-256 hex digest.
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def keyword_digest(keywords: Iterable[str], length: int = 16) -> str:
    """Order-insensitive digest of a keyword set.

    Keywords are stripped, lower-cased, de-duplicated and sorted first, so
    ["Queens", "flood"] and ["flood", "queens"] share a cache key.
    """
    normalized = sorted({kw.strip().lower() for kw in keywords if kw and kw.strip()})
    return text_digest(",".join(normalized), length)
