"""CrisisFusion utilities package.

Everything here except scheduling is a stateless pure function with no
external calls or side effects.
"""

from crisisfusion.utils.date_utils import normalize_date_str, utc_now_iso
from crisisfusion.utils.geo_utils import haversine_km, is_valid_coordinates
from crisisfusion.utils.scheduling import RepeatingTimer
from crisisfusion.utils.text import (
    contains_any,
    keyword_digest,
    matches_keywords,
    normalize_text,
    text_digest,
)

__all__ = [
    "normalize_date_str",
    "utc_now_iso",
    "haversine_km",
    "is_valid_coordinates",
    "RepeatingTimer",
    "contains_any",
    "keyword_digest",
    "matches_keywords",
    "normalize_text",
    "text_digest",
]
