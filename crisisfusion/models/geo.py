"""Geographic data models for CrisisFusion.

Produced by the GeocodingResolver. Every model round-trips through
to_dict()/from_dict() so it can live in the JSON cache.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


class GeocodeSource:
    """Source tags used in GeocodeResult.source and ReverseGeocodeResult.source."""

    GOOGLE_MAPS = "google_maps"
    MAPBOX = "mapbox"
    OPENSTREETMAP = "openstreetmap"
    MOCK = "mock"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinates":
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass
class GeocodeResult:
    """Outcome of resolving a free-text location name.

    ``coordinates`` is None only when ``source`` is "failed"; a "mock" source
    carries the substitute reference point.
    """

    location_name: str
    coordinates: Optional[Coordinates]
    source: str
    geocoded_at: str
    error: Optional[str] = None

    @property
    def is_substitute(self) -> bool:
        return self.source == GeocodeSource.MOCK

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeocodeResult":
        coords = data.get("coordinates")
        return cls(
            location_name=data.get("location_name", ""),
            coordinates=Coordinates.from_dict(coords) if coords else None,
            source=data.get("source", GeocodeSource.FAILED),
            geocoded_at=data.get("geocoded_at", ""),
            error=data.get("error"),
        )


@dataclass
class ReverseGeocodeResult:
    """Outcome of resolving coordinates back to a human-readable address."""

    coordinates: Coordinates
    address: str
    source: str
    reverse_geocoded_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReverseGeocodeResult":
        return cls(
            coordinates=Coordinates.from_dict(data["coordinates"]),
            address=data.get("address", ""),
            source=data.get("source", GeocodeSource.ERROR),
            reverse_geocoded_at=data.get("reverse_geocoded_at", ""),
        )
