"""CrisisFusion data models package.

All resolver and aggregator outputs are typed dataclasses defined here.
Never return raw provider JSON from resolver code; always use the typed models.
"""

from crisisfusion.models.analysis import (
    AnalysisResult,
    AnalysisSource,
    LocationExtraction,
    VerificationResult,
)
from crisisfusion.models.cache import CacheEntry
from crisisfusion.models.feeds import OfficialUpdate, Priority, SocialSignal
from crisisfusion.models.geo import (
    Coordinates,
    GeocodeResult,
    GeocodeSource,
    ReverseGeocodeResult,
)

__all__ = [
    "AnalysisResult",
    "AnalysisSource",
    "CacheEntry",
    "Coordinates",
    "GeocodeResult",
    "GeocodeSource",
    "LocationExtraction",
    "OfficialUpdate",
    "Priority",
    "ReverseGeocodeResult",
    "SocialSignal",
    "VerificationResult",
]
