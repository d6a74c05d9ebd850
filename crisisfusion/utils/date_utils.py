"""Date normalization utilities for CrisisFusion.

Scraped agency pages and social feeds format dates inconsistently. Route
provider date strings through normalize_date_str() before storing them.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as dateutil_parser


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current time as an ISO 8601 UTC string."""
    return utc_now().isoformat()


def iso_minutes_ago(minutes: float, now: datetime | None = None) -> str:
    """ISO 8601 UTC string for a moment ``minutes`` before now."""
    now = now or utc_now()
    return (now - timedelta(minutes=minutes)).isoformat()


def parse_date(raw_date: str) -> Optional[datetime]:
    """Parse a provider date string into an aware datetime (naive means UTC).

    Returns None when the string is empty or not a recognizable date.
    """
    if not raw_date or not raw_date.strip():
        return None
    try:
        parsed = dateutil_parser.parse(raw_date.strip())
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_date_str(raw_date: str) -> str:
    """Normalize a provider date string to ISO 8601.

    Handles RFC 822 feed dates, ISO timestamps, and human-readable forms such
    as "March 3, 2024". Naive values are assumed to be UTC.

    Args:
        raw_date: Raw date string from a provider.

    Returns:
        ISO 8601 string, or the stripped original on parse failure.
    """
    if not raw_date:
        return ""
    parsed = parse_date(raw_date)
    return parsed.isoformat() if parsed else raw_date.strip()
