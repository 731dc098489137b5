import os
import sys
from pathlib import Path

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Keep the module-level API engine off the network and out of backend/data
os.environ.setdefault("OFFLINE_MODE", "0")
os.environ.setdefault("RESOLUTION_CACHE_DIR", "")
os.environ.setdefault("GEOCODER_USER_AGENT", "india-map-assistant-tests/0.1")
