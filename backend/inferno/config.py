import os
from typing import Optional

GEOCODER_URL = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
GEOCODER_LOCALE = os.getenv("GEOCODER_LOCALE", "en")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "inferno-hotspots/0.1 (demo)")
GEOCODE_DELAY_MS = int(os.getenv("GEOCODE_DELAY_MS", "100"))
HOTSPOT_THRESHOLD_M = float(os.getenv("HOTSPOT_THRESHOLD_M", "250"))
MAX_GEOCODE = int(os.getenv("MAX_GEOCODE", "40"))
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")


def backend_url(value: Optional[str] = None) -> str:
    url = value or os.getenv("BACKEND_URL") or os.getenv("NEXT_PUBLIC_BACKEND_URL")
    if not url:
        raise RuntimeError("BACKEND_URL environment variable is not set")
    return url.rstrip("/")
