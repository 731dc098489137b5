"""
Durable cache storage.

Keeps one JSON file per normalised query under a single directory so the
whole cache can be wiped in bulk. Currently uses the local filesystem.

Files are organized as:
- {cache_root}/{sha1(key)}.json  - {"key": ..., "created_at": ..., "places": [...]}
"""
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

from domain.models import Place

logger = logging.getLogger(__name__)

CACHE_FILE_SUFFIX = ".json"


class CacheStorage:
    """
    Local file storage for resolved search results.

    Read and write failures are logged and treated as a miss; the in-memory
    cache stays the primary mechanism.
    """

    def __init__(self, cache_root: str):
        self.cache_root = Path(cache_root)
        self.cache_root.mkdir(parents=True, exist_ok=True)

    def path_for_key(self, key: str) -> Path:
        """Get the file path that stores a normalised key."""
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.cache_root / f"{digest}{CACHE_FILE_SUFFIX}"

    def save(self, key: str, places: List[Place], created_at: Optional[float] = None) -> bool:
        """
        Write a result set for a key, replacing any previous file.

        Returns:
            True when the file was written
        """
        payload = {
            "key": key,
            "created_at": created_at if created_at is not None else time.time(),
            "places": [p.to_dict() for p in places],
        }
        path = self.path_for_key(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
            tmp_path.replace(path)
        except OSError as exc:
            logger.warning("Durable cache write failed for %r: %s", key, exc)
            return False
        return True

    def load(self, key: str) -> Optional[Tuple[float, List[Place]]]:
        """
        Read a stored result set.

        Returns:
            (created_at, places) or None when missing or unreadable
        """
        path = self.path_for_key(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            if payload.get("key") != key:
                return None
            created_at = float(payload["created_at"])
            places = [Place.from_dict(item) for item in payload.get("places") or []]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Durable cache read failed for %r: %s", key, exc)
            return None
        return created_at, places

    def clear_all(self) -> Tuple[int, List[str]]:
        """
        Delete every cache file.

        Returns:
            (files_removed, warnings)
        """
        removed = 0
        warnings: List[str] = []
        if not self.cache_root.exists():
            return removed, warnings
        try:
            entries = list(self.cache_root.iterdir())
        except OSError as exc:
            return removed, [f"could not list {self.cache_root}: {exc}"]
        for path in entries:
            if not path.is_file():
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as exc:
                logger.warning("Could not delete cache file %s: %s", path, exc)
                warnings.append(f"could not delete {path.name}: {exc}")
        return removed, warnings
