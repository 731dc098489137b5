"""
Offline fallback data for India.

Deterministic city list, per-category nearby-place templates and a
haversine-based travel estimate. Used whenever the live providers fail or
offline mode is on. Jitter and ratings are cosmetic; pass a seeded
`random.Random` for reproducible output.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from domain.models import ApproximateLocation, Place, RouteEstimate, TravelMode, validate_coordinates


EARTH_RADIUS_KM = 6371.0
JITTER_DEGREES = 0.005
NEARBY_SLOTS = 8
MAX_FALLBACK_RESULTS = 8
DEFAULT_RESULTS_ON_NO_MATCH = 4

# km/h, tuned for Indian traffic
TRAVEL_SPEEDS_KMH: Dict[TravelMode, float] = {
    TravelMode.DRIVING: 40.0,
    TravelMode.WALKING: 4.0,
    TravelMode.CYCLING: 12.0,
}
DRIVING_TRAFFIC_FACTOR = 1.3


@dataclass(frozen=True)
class FallbackCity:
    name: str
    lat: float
    lng: float
    description: str

    def to_place(self) -> Place:
        return Place(
            name=self.name,
            lat=self.lat,
            lng=self.lng,
            kind="city",
            description=self.description,
        )


MAJOR_CITIES: Tuple[FallbackCity, ...] = (
    FallbackCity("Delhi, India", 28.6139, 77.2090, "Capital of India"),
    FallbackCity("Mumbai, India", 19.0760, 72.8777, "Financial capital of India"),
    FallbackCity("Bengaluru, India", 12.9716, 77.5946, "Silicon Valley of India"),
    FallbackCity("Chennai, India", 13.0827, 80.2707, "Capital of Tamil Nadu"),
    FallbackCity("Kolkata, India", 22.5726, 88.3639, "Cultural capital of India"),
    FallbackCity("Hyderabad, India", 17.3850, 78.4867, "City of Pearls"),
    FallbackCity("Pune, India", 18.5204, 73.8567, "Oxford of the East"),
    FallbackCity("Ahmedabad, India", 23.0225, 72.5714, "Manchester of India"),
    FallbackCity("Jaipur, India", 26.9124, 75.7873, "Pink City of India"),
    FallbackCity("Lucknow, India", 26.8467, 80.9462, "City of Nawabs"),
    FallbackCity("Kochi, India", 9.9312, 76.2673, "Queen of Arabian Sea"),
    FallbackCity("Goa, India", 15.2993, 74.1240, "Beach paradise"),
)

APPROXIMATE_LOCATIONS: Tuple[ApproximateLocation, ...] = (
    ApproximateLocation("New Delhi, India", 28.6139, 77.2090),
    ApproximateLocation("Mumbai, India", 19.0760, 72.8777),
    ApproximateLocation("Bengaluru, India", 12.9716, 77.5946),
    ApproximateLocation("Chennai, India", 13.0827, 80.2707),
    ApproximateLocation("Kolkata, India", 22.5726, 88.3639),
)

QUICK_CITIES: Tuple[Tuple[str, float, float], ...] = (
    ("Delhi", 28.6139, 77.2090),
    ("Mumbai", 19.0760, 72.8777),
    ("Bangalore", 12.9716, 77.5946),
    ("Chennai", 13.0827, 80.2707),
    ("Kolkata", 22.5726, 88.3639),
    ("Hyderabad", 17.3850, 78.4867),
    ("Pune", 18.5204, 73.8567),
    ("Ahmedabad", 23.0225, 72.5714),
    ("Jaipur", 26.9124, 75.7873),
    ("Lucknow", 26.8467, 80.9462),
)

POPULAR_DESTINATIONS: Tuple[Tuple[str, str], ...] = (
    ("Taj Mahal, Agra", "Iconic marble mausoleum"),
    ("Golden Temple, Amritsar", "Sikh holy shrine"),
    ("Goa Beaches", "Popular beach destination"),
    ("Kerala Backwaters", "Serene waterways"),
    ("Leh-Ladakh", "Mountain adventure"),
    ("Varanasi Ghats", "Spiritual city on Ganges"),
    ("Mysore Palace", "Royal heritage site"),
    ("Hampi Ruins", "Ancient Vijayanagara ruins"),
)

# category -> (names, descriptions); slots cycle through each list independently
NEARBY_TEMPLATES: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    "restaurant": (
        ("Saravana Bhavan", "Bikanervala", "Haldiram's", "Local Dhaba",
         "Udipi Restaurant", "Paradise Biryani", "KFC", "McDonald's"),
        ("South Indian Restaurant", "North Indian Cuisine", "Sweet Shop & Restaurant",
         "Highway Dhaba", "Vegetarian Restaurant", "Hyderabadi Restaurant",
         "Fast Food Chain", "American Fast Food"),
    ),
    "hotel": (
        ("Taj Hotel", "ITC Grand", "The Leela", "Radisson Blu",
         "Novotel", "OYO Rooms", "FabHotel", "Treebo"),
        ("Luxury 5-Star Hotel", "Business Hotel", "Premium Hotel", "International Chain",
         "Modern Hotel", "Budget Hotel", "Value Hotel", "Economy Stay"),
    ),
    "attraction": (
        ("Historical Fort", "Ancient Temple", "City Palace", "Museum",
         "Botanical Garden", "Lake View", "Heritage Site", "Public Square"),
        ("Historical Monument", "Religious Site", "Royal Palace", "Cultural Museum",
         "Nature Park", "Scenic Spot", "UNESCO Heritage", "Public Gathering Place"),
    ),
    "shopping": (
        ("DLF Mall", "Phoenix Marketcity", "Forum Mall", "Local Bazaar",
         "Supermarket", "Brand Showroom", "Shopping Complex", "Department Store"),
        ("Premium Shopping Mall", "Large Retail Complex", "Modern Mall", "Traditional Market",
         "Grocery Store", "Brand Outlet", "Shopping Center", "Retail Store"),
    ),
    "hospital": (
        ("Apollo Hospital", "Fortis Hospital", "Max Healthcare", "AIIMS",
         "Government Hospital", "Private Clinic", "Medical Center", "Nursing Home"),
        ("Multi-specialty Hospital", "Super-specialty Hospital", "Healthcare Chain",
         "Government Hospital", "Public Hospital", "Private Clinic", "Medical Facility",
         "Healthcare Center"),
    ),
    "transport": (
        ("Metro Station", "Bus Stand", "Railway Station", "Auto Stand",
         "Taxi Stand", "Rickshaw Stand", "Parking Lot", "Transit Hub"),
        ("Metro Rail Station", "Bus Terminal", "Indian Railways Station", "Auto Rickshaw Stand",
         "Taxi Pickup", "Rickshaw Stop", "Vehicle Parking", "Transport Center"),
    ),
    "park": (
        ("City Park", "Children's Park", "Garden", "Public Ground",
         "Recreation Area", "Walking Track", "Playground", "Green Space"),
        ("Public Park", "Kids Play Area", "Botanical Garden", "Open Ground",
         "Sports Area", "Jogging Track", "Play Area", "Green Zone"),
    ),
    "temple": (
        ("Shiva Temple", "Hanuman Temple", "Krishna Temple", "Durga Temple",
         "Ganesh Temple", "Local Temple", "Ancient Temple", "ISKCON Temple"),
        ("Hindu Temple", "Religious Shrine", "Place of Worship", "Goddess Temple",
         "Elephant God Temple", "Community Temple", "Historical Temple", "Spiritual Center"),
    ),
    "market": (
        ("Local Market", "Vegetable Market", "Street Market", "Flea Market",
         "Wholesale Market", "Night Market", "Shopping Street", "Commercial Area"),
        ("Local Bazaar", "Fresh Produce Market", "Street Shopping", "Flea Market",
         "Wholesale Area", "Evening Market", "Shopping District", "Commercial Zone"),
    ),
}
GENERIC_TEMPLATE: Tuple[Tuple[str, ...], Tuple[str, ...]] = (
    ("Local Place",),
    ("Point of Interest",),
)

ADDRESS_STREETS = (
    "MG Road", "Brigade Road", "Connaught Place", "Park Street",
    "Commercial Street", "Juhu Beach", "Marine Drive",
)
ADDRESS_AREAS = (
    "City Center", "Commercial Area", "Residential Area", "Market Area", "Suburban Area",
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance in kilometers between two lat/lon points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def estimate_travel_minutes(distance_km: float, mode: TravelMode) -> int:
    """Duration at the mode's average speed, with a traffic buffer for driving."""
    traffic = DRIVING_TRAFFIC_FACTOR if mode is TravelMode.DRIVING else 1.0
    return int(round(distance_km / TRAVEL_SPEEDS_KMH[mode] * 60 * traffic))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class OfflineFallbackSource:
    def __init__(
        self,
        cities: Sequence[FallbackCity] = MAJOR_CITIES,
        rng: Optional[random.Random] = None,
    ):
        self.cities = tuple(cities)
        self.rng = rng or random.Random()

    def _jitter(self, lat: float, lng: float) -> Tuple[float, float]:
        d_lat = (self.rng.random() - 0.5) * 2 * JITTER_DEGREES
        d_lng = (self.rng.random() - 0.5) * 2 * JITTER_DEGREES
        return _clamp(lat + d_lat, -90.0, 90.0), _clamp(lng + d_lng, -180.0, 180.0)

    def fallback_search(self, query: str) -> List[Place]:
        """
        Match the query against the built-in city list.

        Name matches come before description matches. A query that matches
        nothing still gets the first few cities so the caller always has
        something to show.
        """
        term = (query or "").strip().lower()
        if not term:
            return [c.to_place() for c in self.cities[:MAX_FALLBACK_RESULTS]]

        exact = [c for c in self.cities if term in c.name.lower()]
        partial = [
            c for c in self.cities
            if term in c.description.lower() and c not in exact
        ]
        matches = exact + partial
        if not matches:
            return [c.to_place() for c in self.cities[:DEFAULT_RESULTS_ON_NO_MATCH]]
        return [c.to_place() for c in matches[:MAX_FALLBACK_RESULTS]]

    def _local_address(self) -> str:
        return f"{self.rng.choice(ADDRESS_STREETS)}, {self.rng.choice(ADDRESS_AREAS)}"

    def fallback_nearby_places(self, lat: float, lng: float, category: str) -> List[Place]:
        """Synthesize eight plausible places of a category around a point."""
        validate_coordinates(lat, lng)
        names, descriptions = NEARBY_TEMPLATES.get(category, GENERIC_TEMPLATE)
        places: List[Place] = []
        for i in range(NEARBY_SLOTS):
            p_lat, p_lng = self._jitter(lat, lng)
            places.append(
                Place(
                    name=names[i % len(names)],
                    lat=p_lat,
                    lng=p_lng,
                    kind=category,
                    description=descriptions[i % len(descriptions)],
                    address=self._local_address(),
                    rating=round(self.rng.uniform(3.0, 5.0), 1),
                    category=category,
                )
            )
        return places

    def fallback_route(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        mode: TravelMode = TravelMode.DRIVING,
    ) -> RouteEstimate:
        """Straight-line estimate with a jittered midpoint; not a road path."""
        (s_lat, s_lng), (e_lat, e_lng) = start, end
        distance = haversine_km(s_lat, s_lng, e_lat, e_lng)
        mid_lat, mid_lng = self._jitter((s_lat + e_lat) / 2, (s_lng + e_lng) / 2)
        return RouteEstimate(
            distance_km=round(distance, 1),
            duration_minutes=estimate_travel_minutes(distance, mode),
            geometry=((s_lng, s_lat), (mid_lng, mid_lat), (e_lng, e_lat)),
            mode=mode,
            offline=True,
        )

    def approximate_location(self) -> ApproximateLocation:
        return self.rng.choice(APPROXIMATE_LOCATIONS)


def quick_cities() -> List[Dict[str, object]]:
    return [
        {"label": name, "lat": lat, "lng": lng, "description": f"{lat:.4f}° N, {lng:.4f}° E"}
        for name, lat, lng in QUICK_CITIES
    ]


def popular_destinations() -> List[Dict[str, str]]:
    return [{"label": label, "description": desc} for label, desc in POPULAR_DESTINATIONS]
