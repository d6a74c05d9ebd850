"""Unit tests for crisisfusion.resolvers.geocoding and crisisfusion.utils.geo_utils.

Covers:
- Coordinate validation edge cases (bounds, bool, NaN, strings)
- Haversine distance (NY to LA, zero distance, symmetry)
- WKT point formatting
- GeocodingResolver: provider fallback order, caching, substitute point,
  "failed" results, reverse geocoding, input validation
"""

from __future__ import annotations

import math
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from config.settings import ServiceConfig
from crisisfusion.errors import ProviderError, ValidationError
from crisisfusion.models.geo import Coordinates, GeocodeSource
from crisisfusion.resolvers.geocoding import GeocodingResolver, build_geocoders
from crisisfusion.utils.geo_utils import (
    haversine_km,
    is_valid_coordinates,
    to_wkt_point,
)


def _geocoder(name, result=None, error=None):
    geocoder = MagicMock()
    geocoder.name = name
    if error is not None:
        geocoder.geocode.side_effect = error
    else:
        geocoder.geocode.return_value = result
    return geocoder


# ── geo_utils ─────────────────────────────────────────────────────────────────────

class TestIsValidCoordinates:
    @pytest.mark.parametrize(
        "lat,lon",
        [(0, 0), (90, 180), (-90, -180), (40.7128, -74.0060)],
    )
    def test_valid_pairs(self, lat, lon):
        """Points inside (or on) the bounds must be valid."""
        assert is_valid_coordinates(lat, lon)

    @pytest.mark.parametrize(
        "lat,lon",
        [
            (91, 0),
            (0, 181),
            (-90.0001, 0),
            (float("nan"), 0),
            (0, float("inf")),
            ("40.7", "-74.0"),
            (None, 0),
            (True, 0),
        ],
    )
    def test_invalid_pairs(self, lat, lon):
        """Out-of-range, non-finite, non-numeric, and boolean values must be invalid."""
        assert not is_valid_coordinates(lat, lon)


class TestHaversine:
    def test_new_york_to_los_angeles(self):
        """NY (40.7128, -74.0060) to LA (34.0522, -118.2437) must be about 3936 km."""
        distance = haversine_km(40.7128, -74.0060, 34.0522, -118.2437)
        assert distance == pytest.approx(3936, abs=20)

    def test_identical_points_zero(self):
        """The distance from a point to itself must be zero."""
        assert haversine_km(51.5, -0.12, 51.5, -0.12) == pytest.approx(0.0)

    def test_symmetric(self):
        """Distance must not depend on argument order."""
        a = haversine_km(35.0, 139.0, -33.8, 151.2)
        b = haversine_km(-33.8, 151.2, 35.0, 139.0)
        assert a == pytest.approx(b)

    def test_antipodal_is_half_circumference(self):
        """Antipodal points must be pi * R apart."""
        assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * 6371.0, rel=1e-6)


class TestWktPoint:
    def test_format_is_lon_then_lat(self):
        """to_wkt_point must put longitude first."""
        assert to_wkt_point(40.7, -74.0) == "POINT(-74.0 40.7)"


# ── GeocodingResolver ─────────────────────────────────────────────────────────────

class TestBuildGeocoders:
    def test_test_mode_builds_none(self, service_config):
        """Test mode must build no network geocoders."""
        assert build_geocoders(service_config) == []

    def test_order_follows_configured_credentials(self):
        """Google (if keyed), Mapbox (if keyed), then OpenStreetMap."""
        config = ServiceConfig(google_maps_api_key="g", mapbox_access_token="m")
        names = [g.name for g in build_geocoders(config)]
        assert names == ["google_maps", "mapbox", "openstreetmap"]

    def test_openstreetmap_only_without_keys(self):
        """Without credentials only OpenStreetMap must be configured."""
        config = ServiceConfig(google_maps_api_key=None, mapbox_access_token=None)
        assert [g.name for g in build_geocoders(config)] == ["openstreetmap"]


class TestGeocode:
    def test_falls_through_to_openstreetmap(self, service_config, cache):
        """Google and Mapbox failing must leave OpenStreetMap to answer."""
        geocoders = [
            _geocoder("google_maps", error=ProviderError("google_maps", "HTTP 500")),
            _geocoder("mapbox", error=ProviderError("mapbox", "no features")),
            _geocoder("openstreetmap", Coordinates(40.7831, -73.9712)),
        ]
        resolver = GeocodingResolver(service_config, cache, geocoders=geocoders)

        result = resolver.geocode("Manhattan, NYC")

        assert result.source == "openstreetmap"
        assert result.coordinates == Coordinates(40.7831, -73.9712)
        assert result.location_name == "Manhattan, NYC"

    def test_result_cached_for_repeat_calls(self, service_config, cache):
        """A second geocode of the same name must be served from cache."""
        osm = _geocoder("openstreetmap", Coordinates(40.7831, -73.9712))
        resolver = GeocodingResolver(service_config, cache, geocoders=[osm])

        first = resolver.geocode("Manhattan, NYC")
        second = resolver.geocode("Manhattan, NYC")

        assert osm.geocode.call_count == 1
        assert second.to_dict() == first.to_dict()

    def test_cache_key_ignores_case_and_whitespace(self, service_config, cache):
        """Names differing only in case or surrounding whitespace must share a cache entry."""
        osm = _geocoder("openstreetmap", Coordinates(40.7831, -73.9712))
        resolver = GeocodingResolver(service_config, cache, geocoders=[osm])

        resolver.geocode("Manhattan, NYC")
        resolver.geocode("  manhattan, nyc ")

        assert osm.geocode.call_count == 1

    def test_cache_expiry_requeries(self, service_config, cache, fake_clock):
        """After the TTL passes the providers must be consulted again."""
        osm = _geocoder("openstreetmap", Coordinates(40.7831, -73.9712))
        resolver = GeocodingResolver(service_config, cache, geocoders=[osm])

        resolver.geocode("Manhattan")
        fake_clock.advance(service_config.cache_ttl_seconds + 1)
        resolver.geocode("Manhattan")

        assert osm.geocode.call_count == 2

    def test_substitute_when_every_provider_fails(self, service_config, cache):
        """Exhausting the chain must yield the substitute point tagged 'mock'."""
        resolver = GeocodingResolver(
            service_config,
            cache,
            geocoders=[_geocoder("openstreetmap", error=ProviderError("openstreetmap", "down"))],
        )
        result = resolver.geocode("Atlantis")

        assert result.source == GeocodeSource.MOCK
        assert result.is_substitute
        assert result.coordinates == Coordinates(40.7128, -74.0060)

    def test_test_mode_serves_substitute(self, service_config, cache):
        """With no geocoders (test mode) every name must resolve to the substitute."""
        result = GeocodingResolver(service_config, cache).geocode("Queens")
        assert result.source == "mock"

    def test_concurrent_geocodes_not_downgraded_to_substitute(self, service_config, cache):
        """A slow but in-time provider must answer every concurrent request, and only real points get cached."""
        def slow_lookup(name):
            time.sleep(0.25)
            return Coordinates(51.5, -0.12)

        osm = _geocoder("openstreetmap")
        osm.geocode.side_effect = slow_lookup
        service_config.provider_chain_timeout = 1.0
        resolver = GeocodingResolver(service_config, cache, geocoders=[osm])
        names = ["London", "Paris", "Rome", "Oslo", "Lisbon", "Vienna"]

        with ThreadPoolExecutor(max_workers=len(names)) as callers:
            results = list(callers.map(resolver.geocode, names))

        assert [r.source for r in results] == ["openstreetmap"] * len(names)
        assert all(resolver.geocode(n).source == "openstreetmap" for n in names)
        assert osm.geocode.call_count == len(names)

    def test_invalid_provider_coordinates_rejected(self, service_config, cache):
        """Out-of-range coordinates from a provider must advance the chain."""
        geocoders = [
            _geocoder("google_maps", Coordinates(123.0, 0.0)),
            _geocoder("openstreetmap", Coordinates(40.0, -74.0)),
        ]
        result = GeocodingResolver(service_config, cache, geocoders=geocoders).geocode("X")
        assert result.source == "openstreetmap"

    def test_failed_when_substitute_disabled(self, cache):
        """With substitutes disabled, exhaustion must yield a 'failed' result that is not cached."""
        config = ServiceConfig(test_mode=True, geocode_use_substitute=False)
        resolver = GeocodingResolver(config, cache)

        result = resolver.geocode("Nowhere")

        assert result.source == GeocodeSource.FAILED
        assert result.coordinates is None
        assert result.error == "All geocoding providers failed"
        assert cache.get(GeocodingResolver.cache_key("Nowhere")) is None

    @pytest.mark.parametrize("bad", ["", "   ", None])
    def test_blank_name_raises(self, service_config, cache, bad):
        """A blank or missing location name must raise ValidationError."""
        with pytest.raises(ValidationError):
            GeocodingResolver(service_config, cache).geocode(bad)


class TestReverseGeocode:
    def test_address_from_provider_is_cached(self, service_config, cache):
        """A reverse-geocoded address must be returned and cached by rounded coordinates."""
        reverse = MagicMock()
        reverse.reverse.return_value = "City Hall Park, Manhattan, New York"
        resolver = GeocodingResolver(service_config, cache, reverse_provider=reverse)

        first = resolver.reverse_geocode(40.71281, -74.00601)
        second = resolver.reverse_geocode(40.71279, -74.00599)

        assert first.address == "City Hall Park, Manhattan, New York"
        assert first.source == "openstreetmap"
        assert second.address == first.address
        assert reverse.reverse.call_count == 1

    def test_provider_failure_yields_unknown_location(self, service_config, cache):
        """A failing reverse provider must yield 'Unknown location' with source 'error', uncached."""
        reverse = MagicMock()
        reverse.reverse.side_effect = ProviderError("openstreetmap", "HTTP 503")
        resolver = GeocodingResolver(service_config, cache, reverse_provider=reverse)

        result = resolver.reverse_geocode(40.7, -74.0)
        resolver.reverse_geocode(40.7, -74.0)

        assert result.address == "Unknown location"
        assert result.source == "error"
        assert reverse.reverse.call_count == 2

    def test_no_provider_in_test_mode(self, service_config, cache):
        """Test mode has no reverse provider and must answer 'Unknown location'."""
        result = GeocodingResolver(service_config, cache).reverse_geocode(10.0, 10.0)
        assert result.address == "Unknown location"

    def test_invalid_coordinates_raise(self, service_config, cache):
        """Out-of-range coordinates must raise ValidationError."""
        with pytest.raises(ValidationError):
            GeocodingResolver(service_config, cache).reverse_geocode(95.0, 0.0)


class TestCalculateDistance:
    def test_distance_matches_haversine(self):
        """calculate_distance must agree with the haversine helper."""
        assert GeocodingResolver.calculate_distance(40.7128, -74.0060, 34.0522, -118.2437) == (
            pytest.approx(haversine_km(40.7128, -74.0060, 34.0522, -118.2437))
        )

    def test_invalid_input_raises(self):
        """Any invalid coordinate must raise ValidationError."""
        with pytest.raises(ValidationError):
            GeocodingResolver.calculate_distance(40.0, -74.0, float("nan"), 0.0)

    def test_is_valid_coordinates_static(self):
        """The resolver's validator must mirror geo_utils."""
        assert GeocodingResolver.is_valid_coordinates(0, 0)
        assert not GeocodingResolver.is_valid_coordinates(0, 200)
