"""
Query biasing toward the target region.

General-purpose geocoders rank results worldwide; appending the country
steers them toward local matches unless the query already names a known
city or the country itself.
"""
from __future__ import annotations

from typing import FrozenSet

from domain.models import INDIA_BOUNDS, RegionBounds

REGION_NAME = "India"

KNOWN_REGION_CITIES: FrozenSet[str] = frozenset(
    {
        "delhi",
        "mumbai",
        "chennai",
        "kolkata",
        "bangalore",
        "hyderabad",
        "pune",
        "ahmedabad",
        "jaipur",
        "lucknow",
        "bengaluru",
        "gurgaon",
        "noida",
        "kochi",
        "goa",
        "chandigarh",
        "indore",
        "bhopal",
    }
)


def build_biased_query(query: str) -> str:
    """Append ", India" unless the query already points inside the region.

    Very short queries (two characters or fewer) are left alone.
    """
    lower = query.lower()
    if any(city in lower for city in KNOWN_REGION_CITIES):
        return query
    if REGION_NAME.lower() in lower or len(query) <= 2:
        return query
    return f"{query}, {REGION_NAME}"


def is_in_region(lat: float, lng: float, bounds: RegionBounds = INDIA_BOUNDS) -> bool:
    return bounds.contains(lat, lng)
