import os
from pathlib import Path

# Basic settings helper to read environment configuration.

DEFAULT_CACHE_DIR = Path(__file__).resolve().parent / "data" / "map-cache"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    return float(val)


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        # Read-only flags owned by the presentation layer's config store.
        self.OFFLINE_MODE: bool = _as_bool(os.getenv("OFFLINE_MODE"), False)
        self.WELCOME_SHOWN: bool = _as_bool(os.getenv("WELCOME_SHOWN"), False)

        self.GEOCODER_BASE_URL: str = os.getenv(
            "GEOCODER_BASE_URL", "https://nominatim.openstreetmap.org"
        )
        self.ROUTER_BASE_URL: str = os.getenv(
            "ROUTER_BASE_URL", "https://router.project-osrm.org"
        )
        self.GEOCODER_USER_AGENT: str | None = os.getenv("GEOCODER_USER_AGENT")
        self.GEOCODER_MIN_INTERVAL: float = _as_float(os.getenv("GEOCODER_MIN_INTERVAL"), 1.0)

        self.SEARCH_TIMEOUT_SECONDS: float = _as_float(os.getenv("SEARCH_TIMEOUT_SECONDS"), 2.0)
        self.ROUTE_TIMEOUT_SECONDS: float = _as_float(os.getenv("ROUTE_TIMEOUT_SECONDS"), 4.0)

        self.RESOLUTION_CACHE_TTL_SECONDS: int = _as_int(
            os.getenv("RESOLUTION_CACHE_TTL_SECONDS"), 300
        )
        self.RESOLUTION_CACHE_MAX_ENTRIES: int = _as_int(
            os.getenv("RESOLUTION_CACHE_MAX_ENTRIES"), 0
        )
        # An explicitly empty value disables the durable cache.
        self.RESOLUTION_CACHE_DIR: str = os.getenv("RESOLUTION_CACHE_DIR", str(DEFAULT_CACHE_DIR))

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
