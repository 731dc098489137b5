"""
Per-connection map session.

A session is handed to whatever needs to push results back to one client;
there is no process-wide "current panel". Messages mirror the map panel's
command protocol.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from services.resolution_engine import ResolutionEngine

logger = logging.getLogger(__name__)


class MapSession:
    def __init__(self, engine: ResolutionEngine, session_id: Optional[str] = None):
        self.engine = engine
        self.session_id = session_id
        self.outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()

    async def push(self, command: str, **payload: Any) -> None:
        await self.outbox.put({"command": command, **payload})

    async def next_message(self) -> Dict[str, Any]:
        return await self.outbox.get()


def _point(message: Dict[str, Any], key: str) -> tuple:
    point = message[key]
    return (float(point["lat"]), float(point["lng"]))


async def dispatch_message(session: MapSession, message: Dict[str, Any]) -> None:
    """Run one panel command against the engine and push the reply onto the session."""
    command = message.get("command")
    engine = session.engine
    try:
        if command == "searchLocation":
            places = await engine.search(str(message.get("query", "")))
            await session.push("searchResults", results=[p.to_dict() for p in places])
        elif command == "getNearbyPlaces":
            places = await engine.nearby_places(
                float(message["lat"]), float(message["lng"]), str(message.get("category", ""))
            )
            await session.push("showNearbyPlaces", places=[p.to_dict() for p in places])
        elif command == "getDirections":
            route = await engine.route(
                _point(message, "start"), _point(message, "end"), message.get("mode", "driving")
            )
            await session.push("showDirections", directions=route.to_dict() if route else None)
        elif command == "clearCache":
            report = await asyncio.to_thread(engine.clear_cache)
            await session.push(
                "cacheCleared",
                memory_entries=report.memory_entries,
                files_removed=report.files_removed,
                warnings=report.warnings,
            )
        elif command == "getCategories":
            await session.push(
                "categories", categories=[c.to_dict() for c in engine.place_categories()]
            )
        else:
            await session.push("error", message=f"unknown command: {command!r}")
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Bad %s message on session %s: %s", command, session.session_id, exc)
        await session.push("error", message=f"invalid {command} request: {exc}")
