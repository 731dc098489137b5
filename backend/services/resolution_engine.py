"""
Resolution engine: biased query -> cache -> live provider -> rank -> cache,
with the offline dataset as the answer of last resort.

The public coroutines never raise; in the worst case they return offline data.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from domain.models import (
    PLACE_CATEGORIES,
    ApproximateLocation,
    CacheClearReport,
    Place,
    PlaceCategory,
    RouteEstimate,
    TravelMode,
)
from services.offline_fallback import OfflineFallbackSource, popular_destinations, quick_cities
from services.provider_gateway import ProviderGateway, ProviderUnavailable, SearchCandidate
from services.region_bias import build_biased_query
from services.resolution_cache import ResolutionCache, normalize_key
from storage.cache_storage import CacheStorage

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 8


def rank_candidates(
    candidates: Sequence[SearchCandidate], limit: int = MAX_SEARCH_RESULTS
) -> List[Place]:
    """In-region hits first, provider order kept within each group, truncated to limit."""
    ordered = sorted(candidates, key=lambda c: not c.in_region)
    return [c.place for c in ordered[:limit]]


class ResolutionEngine:
    def __init__(
        self,
        gateway: ProviderGateway,
        cache: Optional[ResolutionCache] = None,
        fallback: Optional[OfflineFallbackSource] = None,
        config: Any = None,
    ):
        self.gateway = gateway
        self.cache = cache or ResolutionCache()
        self.fallback = fallback or OfflineFallbackSource()
        # Anything with an OFFLINE_MODE attribute; read on every call.
        self.config = config

    @classmethod
    def from_settings(cls, settings: Any) -> "ResolutionEngine":
        storage = None
        if settings.RESOLUTION_CACHE_DIR:
            try:
                storage = CacheStorage(settings.RESOLUTION_CACHE_DIR)
            except OSError as exc:
                logger.warning(
                    "Durable cache disabled, cannot use %s: %s", settings.RESOLUTION_CACHE_DIR, exc
                )
        cache = ResolutionCache(
            ttl_seconds=settings.RESOLUTION_CACHE_TTL_SECONDS,
            max_entries=settings.RESOLUTION_CACHE_MAX_ENTRIES,
            storage=storage,
        )
        return cls(ProviderGateway.from_settings(settings), cache=cache, config=settings)

    @property
    def offline_mode(self) -> bool:
        return bool(getattr(self.config, "OFFLINE_MODE", False))

    async def search(self, query: str) -> List[Place]:
        """Resolve a free-text query to at most eight places."""
        query = (query or "").strip()
        if not query:
            return self.fallback.fallback_search("")
        cached = await self.cache.aget(query)
        if cached is not None:
            return cached
        if self.offline_mode:
            logger.info("Offline mode: answering %r from the built-in city list", query)
            return self.fallback.fallback_search(query)

        biased = build_biased_query(query)
        try:
            candidates = await self.gateway.search_places(biased)
        except ProviderUnavailable:
            logger.info("Search for %r falling back to offline data", query)
            return self.fallback.fallback_search(query)

        places = rank_candidates(candidates)
        await self.cache.aput(query, places)
        logger.debug("search %r -> %d places (%d candidates)", normalize_key(query), len(places), len(candidates))
        return list(places)

    async def nearby_places(self, lat: float, lng: float, category: str) -> List[Place]:
        """Representative places of a category around a point (offline generator only)."""
        try:
            return self.fallback.fallback_nearby_places(lat, lng, category)
        except ValueError as exc:
            logger.warning("Nearby places for (%s, %s) failed: %s", lat, lng, exc)
            return []

    async def route(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        mode: Any = TravelMode.DRIVING,
    ) -> Optional[RouteEstimate]:
        """
        Estimate a route between two (lat, lng) points.

        Returns None only when the live router answers that no route exists.
        """
        travel_mode = TravelMode.parse(mode)
        if travel_mode is None:
            logger.warning("Unknown travel mode %r, using driving", mode)
            travel_mode = TravelMode.DRIVING

        if self.offline_mode:
            logger.info("Offline mode: estimating %s route offline", travel_mode.value)
            return self.fallback.fallback_route(start, end, travel_mode)
        try:
            return await self.gateway.get_route(start, end, travel_mode)
        except ProviderUnavailable:
            logger.info("Route %s -> %s falling back to offline estimate", start, end)
            return self.fallback.fallback_route(start, end, travel_mode)

    def clear_cache(self) -> CacheClearReport:
        report = self.cache.clear()
        for warning in report.warnings:
            logger.warning("Cache clear: %s", warning)
        return report

    def place_categories(self) -> List[PlaceCategory]:
        return list(PLACE_CATEGORIES)

    def approximate_location(self) -> ApproximateLocation:
        return self.fallback.approximate_location()

    def quick_cities(self) -> List[dict]:
        return quick_cities()

    def popular_destinations(self) -> List[dict]:
        return popular_destinations()
