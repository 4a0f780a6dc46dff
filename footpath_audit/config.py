"""Central configuration for the footpath accuracy audit.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Any value backed by ``_env_*`` can be overridden through
environment variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Matching tolerances
# ---------------------------------------------------------------------------
# Radius (metres) of the corridor drawn around every detected and ground-truth
# geometry before measuring overlap.
BUFFER_DISTANCE_M = _env_float("FOOTPATH_BUFFER_DISTANCE_M", 5.0)

# Quadratic segments used per quarter circle when buffering.
BUFFER_RESOLUTION = _env_int("FOOTPATH_BUFFER_RESOLUTION", 8)

# Hard cap on pairwise corridor intersections per analysis. Once reached the
# result is returned early and flagged approximate.
MAX_COMPARISONS = _env_int("FOOTPATH_MAX_COMPARISONS", 1000)

# Pair enumeration order: "row-major" (first N pairs) or "shuffled".
PAIR_ORDER = os.getenv("FOOTPATH_PAIR_ORDER", "row-major")

# Emit an INFO progress line every N comparisons.
PROGRESS_LOG_INTERVAL = _env_int("FOOTPATH_PROGRESS_LOG_INTERVAL", 100)


# ---------------------------------------------------------------------------
# Tiles
# ---------------------------------------------------------------------------
# Slippy-map zoom level of the aerial imagery tiles.
TILE_ZOOM = _env_int("FOOTPATH_TILE_ZOOM", 19)

# Metric coloured on the tile heatmap when none is selected.
DEFAULT_HEATMAP_METRIC = os.getenv("FOOTPATH_HEATMAP_METRIC", "f1_score")

# Metrics a heatmap or scatter export may be keyed on.
TILE_METRICS = (
    "f1_score",
    "precision",
    "recall",
    "iou",
    "tp_length_m",
    "fp_length_m",
    "fn_length_m",
)


# ---------------------------------------------------------------------------
# OpenStreetMap ground truth
# ---------------------------------------------------------------------------
OVERPASS_URL = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")

# Server-side query timeout (seconds) embedded in the Overpass QL header.
OVERPASS_TIMEOUT_S = _env_int("OVERPASS_TIMEOUT_S", 25)

# Client request timeout in seconds.
REQUEST_TIMEOUT = _env_int("FOOTPATH_REQUEST_TIMEOUT", 60)


# ---------------------------------------------------------------------------
# Sample datasets
# ---------------------------------------------------------------------------
# Known study areas. Paths are relative to the working directory.
SAMPLE_DATASETS = {
    "boston_common": {
        "name": "Boston Common",
        "center": (42.3601, -71.0589),
        "tile_path": "boston_common/tiles/static/ma/256_19",
        "image_extension": "jpg",
        "output_path": "boston_common_output",
    },
    "times_square": {
        "name": "Times Square",
        "center": (40.7580, -73.9855),
        "tile_path": "times_square/tiles/static/nyc/256_19",
        "image_extension": "png",
        "output_path": "times_square_output",
    },
}

# Write per-tile rows even for tiles with no detected or ground-truth features.
TILE_KEEP_EMPTY_ROWS = _env_bool("FOOTPATH_TILE_KEEP_EMPTY_ROWS", False)
