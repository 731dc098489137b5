import asyncio
import random

from domain.models import Place, RouteEstimate, TravelMode
from services.offline_fallback import OfflineFallbackSource
from services.provider_gateway import ProviderGateway, ProviderUnavailable, SearchCandidate
from services.resolution_cache import ResolutionCache
from services.resolution_engine import MAX_SEARCH_RESULTS, ResolutionEngine, rank_candidates


class FakeConfig:
    def __init__(self, offline: bool = False):
        self.OFFLINE_MODE = offline


class FakeGateway:
    def __init__(self, candidates=None, route=None, error=None):
        self.candidates = candidates or []
        self.route_result = route
        self.error = error
        self.search_calls = []
        self.route_calls = []

    async def search_places(self, biased_query):
        self.search_calls.append(biased_query)
        if self.error:
            raise self.error
        return list(self.candidates)

    async def get_route(self, start, end, mode=TravelMode.DRIVING):
        self.route_calls.append((start, end, mode))
        if self.error:
            raise self.error
        return self.route_result


def _candidate(name: str, lat: float, lng: float, in_region: bool) -> SearchCandidate:
    return SearchCandidate(place=Place(name=name, lat=lat, lng=lng, kind="place"), in_region=in_region)


def _engine(gateway, offline=False) -> ResolutionEngine:
    return ResolutionEngine(
        gateway,
        cache=ResolutionCache(),
        fallback=OfflineFallbackSource(rng=random.Random(1)),
        config=FakeConfig(offline),
    )


def test_rank_candidates_puts_region_first_and_keeps_order():
    candidates = [
        _candidate("out-1", 51.5, -0.1, False),
        _candidate("in-1", 28.6, 77.2, True),
        _candidate("out-2", 40.7, -74.0, False),
        _candidate("in-2", 19.0, 72.8, True),
        _candidate("in-3", 13.0, 80.2, True),
    ]
    assert [p.name for p in rank_candidates(candidates)] == ["in-1", "in-2", "in-3", "out-1", "out-2"]


def test_rank_candidates_truncates_to_eight():
    candidates = [_candidate(f"p{i}", 20.0, 78.0, i % 2 == 0) for i in range(10)]
    ranked = rank_candidates(candidates)
    assert len(ranked) == MAX_SEARCH_RESULTS
    assert [p.name for p in ranked[:5]] == ["p0", "p2", "p4", "p6", "p8"]
    assert all(isinstance(p, Place) for p in ranked)


def test_live_search_ranks_caches_and_reuses_results():
    gateway = FakeGateway(
        candidates=[
            _candidate("London", 51.5, -0.1, False),
            _candidate("Agra Fort", 27.18, 78.02, True),
            _candidate("New York", 40.7, -74.0, False),
        ]
    )
    engine = _engine(gateway)

    first = asyncio.run(engine.search("X marks"))
    second = asyncio.run(engine.search("  x MARKS "))

    assert [p.name for p in first] == ["Agra Fort", "London", "New York"]
    assert second == first
    assert gateway.search_calls == ["X marks, India"]


def test_search_sends_biased_query():
    gateway = FakeGateway()
    asyncio.run(_engine(gateway).search("cafes in Pune"))
    asyncio.run(_engine(gateway).search("Charminar"))
    assert gateway.search_calls == ["cafes in Pune", "Charminar, India"]


def test_empty_provider_result_is_cached_and_returned():
    gateway = FakeGateway(candidates=[])
    engine = _engine(gateway)
    assert asyncio.run(engine.search("Atlantis")) == []
    assert asyncio.run(engine.search("Atlantis")) == []
    assert len(gateway.search_calls) == 1


def test_provider_failure_falls_back_without_caching():
    gateway = FakeGateway(error=ProviderUnavailable("down"))
    engine = _engine(gateway)

    first = asyncio.run(engine.search("Mumbai"))
    second = asyncio.run(engine.search("Mumbai"))

    assert first[0].name == "Mumbai, India"
    assert second == first
    assert len(gateway.search_calls) == 2
    assert engine.cache.get("Mumbai") is None


def test_timeout_falls_back_to_static_entry_and_retries_network():
    class SlowResponse:
        async def __aenter__(self):
            await asyncio.sleep(0.3)
            return self

        async def __aexit__(self, *exc):
            return False

    class SlowSession:
        def __init__(self):
            self.count = 0

        def get(self, url, **kwargs):
            self.count += 1
            return SlowResponse()

    session = SlowSession()
    gateway = ProviderGateway(user_agent="test", session=session, search_timeout=0.05, min_interval=0.0)
    engine = _engine(gateway)

    results = asyncio.run(engine.search("Mumbai"))

    assert results[0].name == "Mumbai, India"
    assert engine.cache.get("mumbai") is None
    asyncio.run(engine.search("Mumbai"))
    assert session.count == 2


def test_offline_mode_skips_network():
    gateway = FakeGateway(candidates=[_candidate("Live", 20.0, 78.0, True)])
    engine = _engine(gateway, offline=True)

    results = asyncio.run(engine.search("delhi"))

    assert results[0].name == "Delhi, India"
    assert gateway.search_calls == []

    route = asyncio.run(engine.route((28.6, 77.2), (28.7, 77.3), "walking"))
    assert route.offline
    assert route.mode is TravelMode.WALKING
    assert gateway.route_calls == []


def test_offline_mode_is_read_on_every_call():
    gateway = FakeGateway(candidates=[_candidate("Live", 20.0, 78.0, True)])
    engine = _engine(gateway)
    engine.config.OFFLINE_MODE = True
    asyncio.run(engine.search("somewhere"))
    engine.config.OFFLINE_MODE = False
    assert [p.name for p in asyncio.run(engine.search("somewhere"))] == ["Live"]
    assert len(gateway.search_calls) == 1


def test_blank_query_returns_default_cities_without_network():
    gateway = FakeGateway()
    results = asyncio.run(_engine(gateway).search("   "))
    assert len(results) == 8
    assert gateway.search_calls == []


def test_route_returns_live_estimate():
    live = RouteEstimate(distance_km=5.2, duration_minutes=14, geometry=((72.8, 19.0), (72.9, 19.1)), mode=TravelMode.CYCLING)
    gateway = FakeGateway(route=live)
    route = asyncio.run(_engine(gateway).route((19.0, 72.8), (19.1, 72.9), "cycling"))
    assert route == live
    assert gateway.route_calls[0][2] is TravelMode.CYCLING


def test_route_none_from_provider_is_not_replaced():
    gateway = FakeGateway(route=None)
    assert asyncio.run(_engine(gateway).route((0.0, 0.0), (1.0, 1.0))) is None


def test_route_failure_falls_back_to_offline_estimate():
    gateway = FakeGateway(error=ProviderUnavailable("timeout"))
    route = asyncio.run(_engine(gateway).route((0.0, 0.0), (0.0, 1.0), "driving"))
    assert route.offline
    assert len(route.geometry) == 3
    assert route.duration_minutes == 217


def test_unknown_mode_is_treated_as_driving():
    gateway = FakeGateway(error=ProviderUnavailable("down"))
    route = asyncio.run(_engine(gateway).route((0.0, 0.0), (0.0, 1.0), "teleport"))
    assert route.mode is TravelMode.DRIVING


def test_nearby_places_always_offline():
    gateway = FakeGateway()
    places = asyncio.run(_engine(gateway).nearby_places(12.97, 77.59, "temple"))
    assert len(places) == 8
    assert all(p.category == "temple" for p in places)
    assert gateway.search_calls == []


def test_nearby_places_with_invalid_point_returns_empty():
    places = asyncio.run(_engine(FakeGateway()).nearby_places(float("nan"), 77.59, "temple"))
    assert places == []


def test_clear_cache_forces_new_lookup():
    gateway = FakeGateway(candidates=[_candidate("Agra Fort", 27.18, 78.02, True)])
    engine = _engine(gateway)
    asyncio.run(engine.search("agra fort"))

    report = engine.clear_cache()
    asyncio.run(engine.search("agra fort"))

    assert report.memory_entries == 1
    assert report.ok
    assert len(gateway.search_calls) == 2


def test_static_accessors():
    engine = _engine(FakeGateway())
    assert [c.id for c in engine.place_categories()][:3] == ["restaurant", "hotel", "attraction"]
    assert len(engine.place_categories()) == 9
    assert engine.approximate_location().accuracy == "city"
    assert len(engine.quick_cities()) == 10
    assert len(engine.popular_destinations()) == 8
