"""
Core domain models for the location search assistant.
These are framework-agnostic and are returned by value from every service.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TravelMode(str, Enum):
    """Travel modes understood by the routing provider and the offline estimator."""
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"

    @classmethod
    def parse(cls, value: Any) -> Optional["TravelMode"]:
        """Return the matching mode, or None when the value is not a known mode."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class RegionBounds:
    """Axis-aligned lat/lng rectangle that defines "inside the target region"."""
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


# India, used for result prioritisation and the offline dataset.
INDIA_BOUNDS = RegionBounds(north=37.6, south=6.0, east=97.4, west=68.1)


def validate_coordinates(lat: float, lng: float) -> None:
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValueError(f"coordinates must be finite, got ({lat}, {lng})")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"latitude out of range: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise ValueError(f"longitude out of range: {lng}")


@dataclass(frozen=True)
class Place:
    """
    A resolved point of interest.

    `address`, `rating` and `category` are only filled for offline
    nearby-place results; geocoder search results leave them empty.
    """
    name: str
    lat: float
    lng: float
    kind: str = "place"
    description: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    category: Optional[str] = None

    def __post_init__(self) -> None:
        validate_coordinates(self.lat, self.lng)
        if not self.kind:
            object.__setattr__(self, "kind", "place")

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the wire keys the map panel consumes."""
        data: Dict[str, Any] = {
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "type": self.kind,
        }
        for key in ("description", "address", "rating", "category"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Place":
        rating = data.get("rating")
        return cls(
            name=str(data.get("name", "")),
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            kind=str(data.get("type") or "place"),
            description=data.get("description"),
            address=data.get("address"),
            rating=float(rating) if rating is not None else None,
            category=data.get("category"),
        )


@dataclass(frozen=True)
class RouteEstimate:
    """
    Distance/duration estimate between two points.

    `geometry` is an ordered tuple of (lng, lat) pairs, the same axis order
    GeoJSON uses.
    """
    distance_km: float
    duration_minutes: int
    geometry: Tuple[Tuple[float, float], ...]
    mode: TravelMode
    offline: bool = False

    @property
    def distance_label(self) -> str:
        return f"{self.distance_km:.1f} km"

    @property
    def duration_label(self) -> str:
        return f"{self.duration_minutes} min"

    def geojson(self) -> Dict[str, Any]:
        return {
            "type": "LineString",
            "coordinates": [[lng, lat] for lng, lat in self.geometry],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance": self.distance_label,
            "duration": self.duration_label,
            "distance_km": self.distance_km,
            "duration_minutes": self.duration_minutes,
            "geometry": self.geojson(),
            "mode": self.mode.value,
            "offline": self.offline,
        }


@dataclass(frozen=True)
class PlaceCategory:
    """Nearby-search category shown by the presentation layer."""
    id: str
    name: str
    icon: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "icon": self.icon}


PLACE_CATEGORIES: Tuple[PlaceCategory, ...] = (
    PlaceCategory("restaurant", "Restaurants", "🍽️"),
    PlaceCategory("hotel", "Hotels", "🏨"),
    PlaceCategory("attraction", "Attractions", "🏛️"),
    PlaceCategory("shopping", "Shopping", "🛍️"),
    PlaceCategory("hospital", "Medical", "🏥"),
    PlaceCategory("transport", "Transport", "🚆"),
    PlaceCategory("park", "Parks", "🌳"),
    PlaceCategory("temple", "Temples", "🛕"),
    PlaceCategory("market", "Markets", "🏪"),
)


@dataclass(frozen=True)
class ApproximateLocation:
    """City-level guess at the user's position."""
    name: str
    lat: float
    lng: float
    accuracy: str = "city"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "lat": self.lat, "lng": self.lng, "accuracy": self.accuracy}


@dataclass
class CacheClearReport:
    """Outcome of a cache wipe; storage problems are reported, not raised."""
    memory_entries: int = 0
    files_removed: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings
