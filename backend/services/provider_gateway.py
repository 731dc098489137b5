"""
Bounded-time calls to the geocoding (Nominatim) and routing (OSRM) providers.

Every failure mode collapses into `ProviderUnavailable`; callers decide how
to fall back. Requests are native aiohttp coroutines, so an operation that
runs past its timeout is cancelled together with its connection. The global
rate-limit wait counts against the same deadline.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional, Tuple, TypeVar

import aiohttp

from domain.models import INDIA_BOUNDS, Place, RegionBounds, RouteEstimate, TravelMode
from services.region_bias import is_in_region

logger = logging.getLogger(__name__)

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org"
DEFAULT_ROUTER_URL = "https://router.project-osrm.org"
FALLBACK_UA = "india-map-assistant/0.1 (contact: example@example.com)"

SEARCH_RESULT_LIMIT = 10
SEARCH_COUNTRY_CODES = "in"
SEARCH_LANGUAGE = "en"
DEFAULT_SEARCH_TIMEOUT = 2.0
DEFAULT_ROUTE_TIMEOUT = 4.0

_last_request_ts: float = 0.0
_lock: Optional[asyncio.Lock] = None
_lock_loop: Optional[asyncio.AbstractEventLoop] = None
_warned_missing_ua = False
_logged_ua = False

T = TypeVar("T")


class ProviderUnavailable(Exception):
    """The live provider could not produce a usable answer (timeout, transport, payload)."""


@dataclass(frozen=True)
class SearchCandidate:
    """A geocoder hit plus its transient region-membership flag."""
    place: Place
    in_region: bool


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


def _rate_lock() -> asyncio.Lock:
    """Process-wide limiter lock, recreated when a new event loop takes over."""
    global _lock, _lock_loop
    loop = asyncio.get_running_loop()
    if _lock is None or _lock_loop is not loop:
        _lock = asyncio.Lock()
        _lock_loop = loop
    return _lock


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def clean_display_name(display_name: str) -> str:
    """Shorten long address chains to "primary name, region"."""
    parts = display_name.split(",")
    if len(parts) > 3:
        return f"{parts[0].strip()}, {parts[-2].strip()}"
    return display_name


def describe_search_item(item: Dict[str, Any]) -> str:
    """One-line "Type • City, State" description for a geocoder item."""
    kind = _capitalize(str(item.get("type") or item.get("class") or "location"))
    address = item.get("address")
    if isinstance(address, dict):
        city = address.get("city")
        state = address.get("state")
        if city and state:
            return f"{kind} • {city}, {state}"
        if state:
            return f"{kind} • {state}"

    parts = str(item.get("display_name") or "").split(",")
    if len(parts) >= 2:
        return f"{kind} • {parts[-2].strip()}"
    return f"{kind} • Area"


def parse_search_item(item: Any, bounds: RegionBounds = INDIA_BOUNDS) -> SearchCandidate:
    """Map one Nominatim search item to a candidate; raises ProviderUnavailable when malformed."""
    if not isinstance(item, dict):
        raise ProviderUnavailable(f"search item is not an object: {item!r}")
    try:
        lat = float(item["lat"])
        lng = float(item["lon"])
        place = Place(
            name=clean_display_name(str(item["display_name"])),
            lat=lat,
            lng=lng,
            kind=str(item.get("type") or item.get("class") or "place"),
            description=describe_search_item(item),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderUnavailable(f"malformed search item: {exc}") from exc
    return SearchCandidate(place=place, in_region=is_in_region(lat, lng, bounds))


def parse_route_payload(data: Any, mode: TravelMode) -> Optional[RouteEstimate]:
    """Turn an OSRM response into a RouteEstimate, or None when no route exists."""
    if not isinstance(data, dict):
        raise ProviderUnavailable("route payload is not an object")
    routes = data.get("routes")
    if routes is None and data.get("code") != "NoRoute":
        raise ProviderUnavailable(f"route payload has no routes (code={data.get('code')!r})")
    if not routes:
        return None
    try:
        route = routes[0]
        distance_m = float(route["distance"])
        duration_s = float(route["duration"])
        coords = route["geometry"]["coordinates"]
        geometry = tuple((float(lng), float(lat)) for lng, lat in coords)
    except (KeyError, TypeError, ValueError, IndexError) as exc:
        raise ProviderUnavailable(f"malformed route payload: {exc}") from exc
    return RouteEstimate(
        distance_km=round(distance_m / 1000, 1),
        duration_minutes=int(round(duration_s / 60)),
        geometry=geometry,
        mode=mode,
    )


class ProviderGateway:
    def __init__(
        self,
        geocoder_url: str = DEFAULT_GEOCODER_URL,
        router_url: str = DEFAULT_ROUTER_URL,
        user_agent: Optional[str] = None,
        referer: Optional[str] = None,
        search_timeout: float = DEFAULT_SEARCH_TIMEOUT,
        route_timeout: float = DEFAULT_ROUTE_TIMEOUT,
        min_interval: float = 1.0,
        bounds: RegionBounds = INDIA_BOUNDS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        global _warned_missing_ua
        self.geocoder_url = geocoder_url.rstrip("/")
        self.router_url = router_url.rstrip("/")
        self.search_timeout = search_timeout
        self.route_timeout = route_timeout
        self.min_interval = min_interval
        self.bounds = bounds
        # Injected sessions are reused; otherwise one short-lived session per request.
        self.session = session
        if user_agent is None and not _warned_missing_ua:
            logger.warning(
                "GEOCODER_USER_AGENT not set in environment; using fallback UA. "
                "This may violate Nominatim usage policy."
            )
            _warned_missing_ua = True
        self.user_agent = user_agent or FALLBACK_UA
        self.headers: Dict[str, str] = {"User-Agent": self.user_agent}
        if referer:
            self.headers["Referer"] = referer

    @classmethod
    def from_settings(cls, settings: Any) -> "ProviderGateway":
        return cls(
            geocoder_url=settings.GEOCODER_BASE_URL,
            router_url=settings.ROUTER_BASE_URL,
            user_agent=settings.GEOCODER_USER_AGENT,
            search_timeout=settings.SEARCH_TIMEOUT_SECONDS,
            route_timeout=settings.ROUTE_TIMEOUT_SECONDS,
            min_interval=settings.GEOCODER_MIN_INTERVAL,
        )


    @asynccontextmanager
    async def _client(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self.session is not None:
            yield self.session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def _throttled_get(
        self, url: str, *, params: Dict[str, Any], deadline: float, no_route_ok: bool = False
    ) -> Any:
        """Perform a GET with a simple global rate limit and return the decoded JSON body."""
        global _last_request_ts, _logged_ua
        if not _logged_ua:
            logger.debug("Provider User-Agent: %s", _redact_email(self.user_agent))
            _logged_ua = True
        async with _rate_lock():
            wait = self.min_interval - (time.time() - _last_request_ts)
            if wait > 0:
                if wait >= deadline - time.monotonic():
                    raise ProviderUnavailable(
                        f"rate-limit wait of {wait:.2f}s does not fit before the deadline"
                    )
                await asyncio.sleep(wait)
            _last_request_ts = time.time()

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProviderUnavailable(f"no time left to request {url}")
        try:
            async with self._client() as session:
                async with session.get(
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=remaining),
                ) as resp:
                    if no_route_ok and resp.status == 400:
                        # OSRM reports NoRoute with a 400 and a JSON body
                        body = await resp.json(content_type=None)
                        if isinstance(body, dict) and body.get("code") == "NoRoute":
                            return body
                    resp.raise_for_status()
                    return await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailable(f"request to {url} timed out") from exc
        except aiohttp.ClientError as exc:
            raise ProviderUnavailable(f"request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailable(f"invalid JSON from {url}: {exc}") from exc

    async def _bounded(self, call: Awaitable[T], *, timeout: float, label: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("%s timed out after %.1fs", label, timeout)
            raise ProviderUnavailable(f"{label} timed out after {timeout:.1f}s") from exc

    async def _search(self, biased_query: str, deadline: float) -> List[SearchCandidate]:
        params = {
            "format": "json",
            "q": biased_query,
            "limit": str(SEARCH_RESULT_LIMIT),
            "addressdetails": "1",
            "accept-language": SEARCH_LANGUAGE,
            "countrycodes": SEARCH_COUNTRY_CODES,
        }
        data = await self._throttled_get(
            f"{self.geocoder_url}/search", params=params, deadline=deadline
        )
        if not isinstance(data, list):
            raise ProviderUnavailable(
                f"search payload is {type(data).__name__}, expected a list"
            )
        return [parse_search_item(item, self.bounds) for item in data]

    async def _route(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        mode: TravelMode,
        deadline: float,
    ) -> Optional[RouteEstimate]:
        (s_lat, s_lng), (e_lat, e_lng) = start, end
        url = f"{self.router_url}/route/v1/{mode.value}/{s_lng},{s_lat};{e_lng},{e_lat}"
        data = await self._throttled_get(
            url,
            params={"overview": "full", "geometries": "geojson"},
            deadline=deadline,
            no_route_ok=True,
        )
        return parse_route_payload(data, mode)

    async def search_places(self, biased_query: str) -> List[SearchCandidate]:
        """Geocode a query; at most one outbound request, bounded by search_timeout."""
        deadline = time.monotonic() + self.search_timeout
        try:
            return await self._bounded(
                self._search(biased_query, deadline),
                timeout=self.search_timeout,
                label=f"search {biased_query!r}",
            )
        except ProviderUnavailable as exc:
            logger.warning("Geocoder unavailable for %r: %s", biased_query, exc)
            raise

    async def get_route(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        mode: TravelMode = TravelMode.DRIVING,
    ) -> Optional[RouteEstimate]:
        """Route between two (lat, lng) points; None when the provider finds no route."""
        deadline = time.monotonic() + self.route_timeout
        try:
            return await self._bounded(
                self._route(start, end, mode, deadline),
                timeout=self.route_timeout,
                label=f"route {mode.value}",
            )
        except ProviderUnavailable as exc:
            logger.warning("Router unavailable for %s -> %s (%s): %s", start, end, mode.value, exc)
            raise
