"""Geocoding resolver for CrisisFusion.

Resolves free-text location names to coordinates through a ProviderChain
over the configured geocoders (Google Maps, then Mapbox, then OpenStreetMap),
terminating in a fixed substitute reference point. Also provides haversine
distance, coordinate validation, and cached reverse geocoding.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from config.defaults import REVERSE_GEOCODE_KEY_PRECISION
from config.settings import ServiceConfig
from crisisfusion.clients.geocoding_client import (
    GoogleMapsGeocoder,
    MapboxGeocoder,
    NominatimGeocoder,
)
from crisisfusion.errors import ValidationError
from crisisfusion.io.cache import TTLCache
from crisisfusion.models.geo import (
    Coordinates,
    GeocodeResult,
    GeocodeSource,
    ReverseGeocodeResult,
)
from crisisfusion.resolvers.provider_chain import ProviderChain
from crisisfusion.utils import geo_utils
from crisisfusion.utils.date_utils import utc_now_iso
from crisisfusion.utils.text import text_digest

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "Unknown location"


def build_geocoders(config: ServiceConfig) -> List[Any]:
    """Build the geocoder list in fallback order from configured credentials.

    Google Maps and Mapbox are included only when their keys are present;
    Nominatim needs no key and is always last. Test mode builds none.
    """
    if config.test_mode:
        return []
    geocoders: List[Any] = []
    if config.google_maps_api_key:
        geocoders.append(GoogleMapsGeocoder(config.google_maps_api_key, config.geocoding_timeout))
    if config.mapbox_access_token:
        geocoders.append(MapboxGeocoder(config.mapbox_access_token, config.geocoding_timeout))
    geocoders.append(NominatimGeocoder(config.nominatim_timeout))
    if len(geocoders) == 1:
        logger.info("No Google Maps or Mapbox credentials; geocoding via OpenStreetMap only")
    return geocoders


def _normalize_name(location_name: str) -> str:
    return " ".join(location_name.lower().split())


def _require_coordinates(*pairs: tuple) -> None:
    for lat, lon in pairs:
        if not geo_utils.is_valid_coordinates(lat, lon):
            raise ValidationError(f"Invalid coordinates: ({lat!r}, {lon!r})")


class GeocodingResolver:
    """Location name to coordinates, with caching and a substitute fallback.

    Args:
        config: Service configuration.
        cache: TTL cache for resolved results.
        geocoders: Ordered geocoder adapters exposing ``name`` and
            ``geocode(name) -> Coordinates``. Defaults to build_geocoders(config).
        reverse_provider: Adapter exposing ``reverse(lat, lon, timeout)``.
            Defaults to a NominatimGeocoder outside test mode.
    """

    def __init__(
        self,
        config: ServiceConfig,
        cache: TTLCache,
        geocoders: Optional[List[Any]] = None,
        reverse_provider: Optional[Any] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.geocoders = build_geocoders(config) if geocoders is None else list(geocoders)

        if reverse_provider is None and not config.test_mode:
            reverse_provider = next(
                (g for g in self.geocoders if isinstance(g, NominatimGeocoder)),
                None,
            ) or NominatimGeocoder(config.nominatim_timeout)
        self.reverse_provider = reverse_provider

        substitute = self._substitute if config.geocode_use_substitute else None
        self.chain: ProviderChain[Coordinates] = ProviderChain(
            providers=[(g.name, g.geocode) for g in self.geocoders],
            substitute=substitute,
            substitute_tag=GeocodeSource.MOCK,
            timeout=config.provider_chain_timeout,
            validator=lambda c: geo_utils.is_valid_coordinates(c.latitude, c.longitude),
            name="geocode",
        )

    def _substitute(self, _location_name: str) -> Coordinates:
        return Coordinates(
            latitude=self.config.substitute_latitude,
            longitude=self.config.substitute_longitude,
        )

    @staticmethod
    def cache_key(location_name: str) -> str:
        return f"geocode_{text_digest(_normalize_name(location_name), 32)}"

    def geocode(self, location_name: str) -> GeocodeResult:
        """Resolve a location name to coordinates.

        Args:
            location_name: Free-text place name, e.g. "Manhattan, NYC".

        Returns:
            GeocodeResult tagged with the provider that answered, "mock" for
            the substitute point, or "failed" when substitutes are disabled.

        Raises:
            ValidationError: If location_name is blank.
        """
        if not isinstance(location_name, str) or not location_name.strip():
            raise ValidationError("location_name must be a non-empty string")

        key = self.cache_key(location_name)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Geocode cache hit for %r", location_name)
            return GeocodeResult.from_dict(cached)

        outcome = self.chain.resolve(location_name.strip())
        if outcome.failed:
            logger.warning("Geocoding failed for %r: no provider answered", location_name)
            return GeocodeResult(
                location_name=location_name,
                coordinates=None,
                source=GeocodeSource.FAILED,
                geocoded_at=utc_now_iso(),
                error="All geocoding providers failed",
            )

        result = GeocodeResult(
            location_name=location_name,
            coordinates=outcome.value,
            source=outcome.source,
            geocoded_at=utc_now_iso(),
        )
        self.cache.set(key, result.to_dict(), self.config.cache_ttl_seconds)
        logger.info(
            "Geocoded %r -> (%.4f, %.4f) via %s",
            location_name,
            result.coordinates.latitude,
            result.coordinates.longitude,
            result.source,
        )
        return result

    def reverse_geocode(self, latitude: float, longitude: float) -> ReverseGeocodeResult:
        """Resolve coordinates to a human-readable address.

        Failures yield address "Unknown location" with source "error" and are
        not cached.

        Raises:
            ValidationError: If the coordinates are invalid.
        """
        _require_coordinates((latitude, longitude))
        lat_key, lon_key = geo_utils.round_coordinates(
            latitude, longitude, REVERSE_GEOCODE_KEY_PRECISION
        )
        key = f"reverse_geocode_{lat_key}_{lon_key}"
        coords = Coordinates(latitude=float(latitude), longitude=float(longitude))

        cached = self.cache.get(key)
        if cached is not None:
            return ReverseGeocodeResult.from_dict(cached)

        if self.reverse_provider is None:
            logger.debug("No reverse geocoder configured; returning unknown location")
            return ReverseGeocodeResult(coords, UNKNOWN_ADDRESS, GeocodeSource.ERROR, utc_now_iso())

        try:
            address = self.reverse_provider.reverse(
                latitude, longitude, timeout=self.config.reverse_geocoding_timeout
            )
        except Exception as exc:
            logger.warning("Reverse geocoding failed for (%s, %s): %s", latitude, longitude, exc)
            return ReverseGeocodeResult(coords, UNKNOWN_ADDRESS, GeocodeSource.ERROR, utc_now_iso())

        result = ReverseGeocodeResult(
            coordinates=coords,
            address=address,
            source=GeocodeSource.OPENSTREETMAP,
            reverse_geocoded_at=utc_now_iso(),
        )
        self.cache.set(key, result.to_dict(), self.config.cache_ttl_seconds)
        return result

    @staticmethod
    def is_valid_coordinates(latitude: Any, longitude: Any) -> bool:
        return geo_utils.is_valid_coordinates(latitude, longitude)

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Great-circle distance in kilometres (haversine, R = 6371 km).

        Raises:
            ValidationError: If either coordinate pair is invalid.
        """
        _require_coordinates((lat1, lon1), (lat2, lon2))
        return geo_utils.haversine_km(lat1, lon1, lat2, lon2)
