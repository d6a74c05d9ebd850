"""Geocoding provider adapters for CrisisFusion.

Each adapter turns a free-text location name into Coordinates or raises
ProviderError. All response-shape assumptions for Google Maps, Mapbox, and
OpenStreetMap Nominatim live in this module; the GeocodingResolver only
sees Coordinates.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from requests import Session

from config.defaults import (
    GEOCODING_REQUEST_TIMEOUT,
    GOOGLE_GEOCODE_URL,
    MAPBOX_GEOCODE_URL,
    NOMINATIM_REQUEST_TIMEOUT,
    NOMINATIM_REVERSE_URL,
    NOMINATIM_SEARCH_URL,
)
from crisisfusion.clients.http import build_session, fetch_json
from crisisfusion.errors import ProviderError
from crisisfusion.models.geo import Coordinates, GeocodeSource
from crisisfusion.utils.geo_utils import is_valid_coordinates

logger = logging.getLogger(__name__)


def _coordinates(provider: str, lat: Any, lon: Any) -> Coordinates:
    """Build Coordinates from provider values, rejecting junk."""
    try:
        coords = Coordinates(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError) as exc:
        raise ProviderError(provider, f"non-numeric coordinates {lat!r}, {lon!r}") from exc
    if not is_valid_coordinates(coords.latitude, coords.longitude):
        raise ProviderError(provider, f"coordinates out of range {lat!r}, {lon!r}")
    return coords


class GoogleMapsGeocoder:
    """Google Maps Geocoding API adapter.

    Args:
        api_key: Google Maps API key.
        request_timeout: HTTP timeout in seconds.
        session: Optional pre-built requests Session.
    """

    name = GeocodeSource.GOOGLE_MAPS

    def __init__(
        self,
        api_key: str,
        request_timeout: float = GEOCODING_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.api_key = api_key
        self.request_timeout = request_timeout
        self._session = session or build_session()

    def geocode(self, location_name: str) -> Coordinates:
        data = fetch_json(
            self._session,
            self.name,
            GOOGLE_GEOCODE_URL,
            self.request_timeout,
            params={"address": location_name, "key": self.api_key},
        )
        status = data.get("status") if isinstance(data, dict) else None
        results = data.get("results") if isinstance(data, dict) else None
        if status != "OK" or not results:
            raise ProviderError(self.name, f"no result (status={status})")
        try:
            location = results[0]["geometry"]["location"]
            return _coordinates(self.name, location["lat"], location["lng"])
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, f"unexpected response shape: {exc}") from exc


class MapboxGeocoder:
    """Mapbox Geocoding API adapter.

    Mapbox returns ``center`` as [longitude, latitude].
    """

    name = GeocodeSource.MAPBOX

    def __init__(
        self,
        access_token: str,
        request_timeout: float = GEOCODING_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.access_token = access_token
        self.request_timeout = request_timeout
        self._session = session or build_session()

    def geocode(self, location_name: str) -> Coordinates:
        url = MAPBOX_GEOCODE_URL.format(query=quote(location_name, safe=""))
        data = fetch_json(
            self._session,
            self.name,
            url,
            self.request_timeout,
            params={"access_token": self.access_token, "limit": 1},
        )
        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            raise ProviderError(self.name, "no features in response")
        try:
            lon, lat = features[0]["center"][:2]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"unexpected response shape: {exc}") from exc
        return _coordinates(self.name, lat, lon)


class NominatimGeocoder:
    """OpenStreetMap Nominatim adapter for forward and reverse geocoding.

    No credentials are needed, but Nominatim's usage policy requires an
    identifying User-Agent, which build_session() sets.
    """

    name = GeocodeSource.OPENSTREETMAP

    def __init__(
        self,
        request_timeout: float = NOMINATIM_REQUEST_TIMEOUT,
        session: Optional[Session] = None,
    ) -> None:
        self.request_timeout = request_timeout
        self._session = session or build_session()

    def geocode(self, location_name: str) -> Coordinates:
        data = fetch_json(
            self._session,
            self.name,
            NOMINATIM_SEARCH_URL,
            self.request_timeout,
            params={"q": location_name, "format": "json", "limit": 1},
        )
        if not isinstance(data, list) or not data:
            raise ProviderError(self.name, "no match")
        try:
            return _coordinates(self.name, data[0]["lat"], data[0]["lon"])
        except (KeyError, TypeError) as exc:
            raise ProviderError(self.name, f"unexpected response shape: {exc}") from exc

    def reverse(self, latitude: float, longitude: float, timeout: Optional[float] = None) -> str:
        """Resolve coordinates to Nominatim's ``display_name`` address string."""
        data = fetch_json(
            self._session,
            self.name,
            NOMINATIM_REVERSE_URL,
            timeout or self.request_timeout,
            params={"lat": latitude, "lon": longitude, "format": "json"},
        )
        address = data.get("display_name") if isinstance(data, dict) else None
        if not address:
            error = data.get("error") if isinstance(data, dict) else None
            raise ProviderError(self.name, f"no address ({error or 'empty response'})")
        return address
