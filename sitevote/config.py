"""Engine configuration.

Loads overrides from engine_config.json when available, falling back to
sensible defaults. Keep API request shapes centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints (relative to SITEVOTE_API_URL) ---

LOCATIONS_PATH = "/locations"
CITY_SUMMARIES_PATH = "/cities"
VOTE_PATH_TEMPLATE = "/locations/{location_id}/votes"

API_URL_ENV = "SITEVOTE_API_URL"
API_TOKEN_ENV = "SITEVOTE_API_TOKEN"

# --- Defaults (used when no engine_config.json) ---

_DEFAULT_PAGE_SIZE = 25
_DEFAULT_METRO_RADIUS_MILES = 50.0
_DEFAULT_ZOOM_THRESHOLD = 9.0
_DEFAULT_EXCLUDE_RED_REJECT_FOR_PUBLIC = True
_DEFAULT_VIEWPORT_DEBOUNCE_SECONDS = 0.3

# --- Mutable config (populated by load_engine_config or directly) ---

PAGE_SIZE = _DEFAULT_PAGE_SIZE
METRO_RADIUS_MILES = _DEFAULT_METRO_RADIUS_MILES
ZOOM_THRESHOLD = _DEFAULT_ZOOM_THRESHOLD

# Non-admins have no size control; RedReject sites stay hidden from them
# unless this is switched off.
EXCLUDE_RED_REJECT_FOR_PUBLIC = _DEFAULT_EXCLUDE_RED_REJECT_FOR_PUBLIC

VIEWPORT_DEBOUNCE_SECONDS = _DEFAULT_VIEWPORT_DEBOUNCE_SECONDS

# None means the built-in US_METROS table.
GAZETTEER: Optional[List[Dict[str, Any]]] = None

# "locations" consolidates visible locations client-side; "summaries" folds
# the server's per-city aggregates for public viewers, with the source
# applying the same released and RedReject rules.
CITY_TIER_SOURCE = "locations"

# --- Geo ---

EARTH_RADIUS_MILES = 3958.8
BUBBLE_FLY_TO_ZOOM = 11
VIEWPORT_WIDTH_PX = 1024
VIEWPORT_HEIGHT_PX = 768
TILE_SIZE_PX = 256

# --- Scoring ---

SCORE_GREEN_MIN = 0.75
SCORE_YELLOW_MIN = 0.5
SCORE_AMBER_MIN = 0.25

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 5
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0

# --- Outputs ---

OUTPUT_DIR = "out"


def load_engine_config(path: Optional[str] = None) -> bool:
    """Load engine configuration from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "engine_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    globals_ref = globals()

    page_size = data.get("page_size")
    if page_size is not None:
        if int(page_size) <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        globals_ref["PAGE_SIZE"] = int(page_size)

    radius = data.get("metro_radius_miles")
    if radius is not None:
        globals_ref["METRO_RADIUS_MILES"] = float(radius)

    threshold = data.get("zoom_threshold")
    if threshold is not None:
        globals_ref["ZOOM_THRESHOLD"] = float(threshold)

    if "exclude_red_reject_for_public" in data:
        globals_ref["EXCLUDE_RED_REJECT_FOR_PUBLIC"] = bool(data["exclude_red_reject_for_public"])

    debounce = data.get("viewport_debounce_seconds")
    if debounce is not None:
        globals_ref["VIEWPORT_DEBOUNCE_SECONDS"] = max(0.0, float(debounce))

    city_source = data.get("city_tier_source")
    if city_source is not None:
        if city_source not in ("locations", "summaries"):
            raise ValueError(f"Unknown city_tier_source: {city_source}")
        globals_ref["CITY_TIER_SOURCE"] = city_source

    gazetteer = data.get("gazetteer")
    if gazetteer:
        globals_ref["GAZETTEER"] = list(gazetteer)

    http = data.get("http", {})
    if "timeout_seconds" in http:
        globals_ref["HTTP_TIMEOUT_SECONDS"] = int(http["timeout_seconds"])
    if "retry_max" in http:
        globals_ref["HTTP_RETRY_MAX"] = int(http["retry_max"])

    return True
