"""
Places, routing and cache API routes.

Thin adapters over ResolutionEngine; rendering is left to the client.
"""
import json
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from domain.models import Place, RouteEstimate
from services.resolution_engine import ResolutionEngine
from services.session import MapSession, dispatch_message
from settings import settings

router = APIRouter()
engine = ResolutionEngine.from_settings(settings)
logger = logging.getLogger(__name__)


class PlaceResponse(BaseModel):
    name: str
    lat: float
    lng: float
    type: str
    description: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    category: Optional[str] = None


class RouteGeometry(BaseModel):
    type: str = "LineString"
    coordinates: List[List[float]]


class RouteResponse(BaseModel):
    distance: str
    duration: str
    distance_km: float
    duration_minutes: int
    geometry: RouteGeometry
    mode: str
    offline: bool


class CategoryResponse(BaseModel):
    id: str
    name: str
    icon: str


class CacheClearResponse(BaseModel):
    success: bool
    memory_entries: int
    files_removed: int
    warnings: List[str]


class LocationResponse(BaseModel):
    name: str
    lat: float
    lng: float
    accuracy: str


class PickListItem(BaseModel):
    label: str
    description: str
    lat: Optional[float] = None
    lng: Optional[float] = None


def place_to_response(place: Place) -> PlaceResponse:
    return PlaceResponse(**place.to_dict())


def route_to_response(route: RouteEstimate) -> RouteResponse:
    return RouteResponse(**route.to_dict())


@router.get("/places/search", response_model=List[PlaceResponse])
async def search_places(q: str = Query("", max_length=256)):
    """Resolve a free-text query, biased toward India."""
    places = await engine.search(q)
    return [place_to_response(p) for p in places]


@router.get("/places/nearby", response_model=List[PlaceResponse])
async def nearby_places(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    category: str = Query("attraction"),
):
    places = await engine.nearby_places(lat, lng, category)
    return [place_to_response(p) for p in places]


@router.get("/places/categories", response_model=List[CategoryResponse])
async def place_categories():
    return [CategoryResponse(**c.to_dict()) for c in engine.place_categories()]


@router.get("/places/quick-cities", response_model=List[PickListItem])
async def quick_cities():
    return [PickListItem(**item) for item in engine.quick_cities()]


@router.get("/places/popular-destinations", response_model=List[PickListItem])
async def popular_destinations():
    return [PickListItem(**item) for item in engine.popular_destinations()]


@router.get("/routes", response_model=Optional[RouteResponse])
async def get_route(
    start_lat: float = Query(..., ge=-90, le=90),
    start_lng: float = Query(..., ge=-180, le=180),
    end_lat: float = Query(..., ge=-90, le=90),
    end_lng: float = Query(..., ge=-180, le=180),
    mode: str = Query("driving"),
):
    """
    Route between two points.

    Returns null when the routing provider reports that no route exists.
    """
    route = await engine.route((start_lat, start_lng), (end_lat, end_lng), mode)
    return route_to_response(route) if route else None


@router.delete("/cache", response_model=CacheClearResponse)
def clear_cache():
    report = engine.clear_cache()
    return CacheClearResponse(
        success=report.ok,
        memory_entries=report.memory_entries,
        files_removed=report.files_removed,
        warnings=report.warnings,
    )


@router.get("/location/approximate", response_model=LocationResponse)
async def approximate_location():
    return LocationResponse(**engine.approximate_location().to_dict())


@router.get("/status")
async def status():
    return {
        "offline_mode": engine.offline_mode,
        "welcome_shown": settings.WELCOME_SHOWN,
        "cached_queries": len(engine.cache),
    }


@router.websocket("/ws")
async def map_session(websocket: WebSocket):
    """Message-driven session: one MapSession per connection."""
    await websocket.accept()
    session = MapSession(engine, session_id=uuid.uuid4().hex)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Map session %s sent a non-JSON frame", session.session_id)
                await session.push("error", message="messages must be valid JSON")
            else:
                if isinstance(message, dict):
                    await dispatch_message(session, message)
                else:
                    await session.push("error", message="messages must be JSON objects")
            while not session.outbox.empty():
                await websocket.send_json(session.outbox.get_nowait())
    except WebSocketDisconnect:
        logger.debug("Map session %s closed", session.session_id)
