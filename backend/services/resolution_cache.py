"""
In-memory resolution cache with lazy TTL expiry.

Entries are keyed by the normalised query. Staleness is only checked on
read; nothing runs in the background. An optional durable store is read
through on memory miss and written on every put; the async variants move
that file I/O off the event loop.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from domain.models import CacheClearReport, Place
from storage.cache_storage import CacheStorage

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


def normalize_key(key: str) -> str:
    """Lower-case and trim so case/whitespace variants share an entry."""
    return key.strip().lower()


@dataclass(frozen=True)
class CacheEntry:
    key: str
    places: Tuple[Place, ...]
    created_at: float


class ResolutionCache:
    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = 0,
        storage: Optional[CacheStorage] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.storage = storage
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_fresh(self, created_at: float) -> bool:
        return (self._clock() - created_at) < self.ttl_seconds

    def _memory_get(self, norm: str) -> Optional[List[Place]]:
        with self._lock:
            entry = self._entries.get(norm)
            if entry is not None and self._is_fresh(entry.created_at):
                self._entries.move_to_end(norm)
                logger.debug("cache hit %r", norm)
                return list(entry.places)
        return None

    def _accept_stored(
        self, norm: str, stored: Optional[Tuple[float, List[Place]]]
    ) -> Optional[List[Place]]:
        if stored is not None:
            created_at, places = stored
            if self._is_fresh(created_at):
                logger.debug("durable cache hit %r", norm)
                self._insert(CacheEntry(norm, tuple(places), created_at))
                return list(places)
        logger.debug("cache miss %r", norm)
        return None

    def get(self, key: str) -> Optional[List[Place]]:
        """Return a copy of the cached places, or None on miss or expiry."""
        norm = normalize_key(key)
        hit = self._memory_get(norm)
        if hit is not None:
            return hit
        stored = self.storage.load(norm) if self.storage is not None else None
        return self._accept_stored(norm, stored)

    async def aget(self, key: str) -> Optional[List[Place]]:
        """Like get, but the durable read runs on a worker thread."""
        norm = normalize_key(key)
        hit = self._memory_get(norm)
        if hit is not None:
            return hit
        stored = None
        if self.storage is not None:
            stored = await asyncio.to_thread(self.storage.load, norm)
        return self._accept_stored(norm, stored)

    def _memory_put(self, key: str, places: List[Place]) -> CacheEntry:
        entry = CacheEntry(normalize_key(key), tuple(places), self._clock())
        self._insert(entry)
        logger.debug("cache store %r (%d places)", entry.key, len(entry.places))
        return entry

    def put(self, key: str, places: List[Place]) -> None:
        """Insert or overwrite the entry for key, stamped with the current time."""
        entry = self._memory_put(key, places)
        if self.storage is not None:
            self.storage.save(entry.key, list(entry.places), created_at=entry.created_at)

    async def aput(self, key: str, places: List[Place]) -> None:
        """Like put, but the durable write runs on a worker thread."""
        entry = self._memory_put(key, places)
        if self.storage is not None:
            await asyncio.to_thread(
                self.storage.save, entry.key, list(entry.places), created_at=entry.created_at
            )

    def _insert(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry
            self._entries.move_to_end(entry.key)
            if self.max_entries > 0:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("cache evict %r", evicted)

    def clear(self) -> CacheClearReport:
        """Drop every entry and delete the durable cache files."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        report = CacheClearReport(memory_entries=count)
        if self.storage is not None:
            try:
                removed, warnings = self.storage.clear_all()
            except OSError as exc:
                logger.warning("Durable cache clear failed: %s", exc)
                report.warnings.append(str(exc))
            else:
                report.files_removed = removed
                report.warnings.extend(warnings)
        return report
