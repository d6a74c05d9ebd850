"""CrisisFusion provider clients.

HTTP and SDK adapters for every external provider. Response-shape
assumptions live here and nowhere else.
"""

from crisisfusion.clients.geocoding_client import (
    GoogleMapsGeocoder,
    MapboxGeocoder,
    NominatimGeocoder,
)
from crisisfusion.clients.image_fetcher import ImageFetcher
from crisisfusion.clients.llm_client import LLMClient, safe_parse_llm_json
from crisisfusion.clients.official_client import (
    FEMA_PROFILE,
    NWS_PROFILE,
    REDCROSS_PROFILE,
    FeedUpdateSource,
    HtmlUpdateSource,
)
from crisisfusion.clients.social_client import BlueskyFeedProvider, TwitterFeedProvider

__all__ = [
    "GoogleMapsGeocoder",
    "MapboxGeocoder",
    "NominatimGeocoder",
    "ImageFetcher",
    "LLMClient",
    "safe_parse_llm_json",
    "FEMA_PROFILE",
    "NWS_PROFILE",
    "REDCROSS_PROFILE",
    "FeedUpdateSource",
    "HtmlUpdateSource",
    "BlueskyFeedProvider",
    "TwitterFeedProvider",
]
