"""Global pytest fixtures & helpers.

Adds project root to path and provides geometry factories shared by the
normalisation, metrics and rendering tests. Coordinates are built from metre
offsets around a point on Boston Common so expected lengths are exact.
"""
from __future__ import annotations

import math
import os
import sys
from typing import Any, Dict, Iterable, Optional, Tuple

import pytest
from pyproj import Geod
from shapely.geometry import LineString, Polygon

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from footpath_audit.geometry import Feature

BASE_LON = -71.067
BASE_LAT = 42.355

_GEOD = Geod(ellps="WGS84")


# --- Factory helpers -------------------------------------------------
def offset(east_m: float, north_m: float, origin: Tuple[float, float] = (BASE_LON, BASE_LAT)):
    """Return ``(lon, lat)`` displaced from ``origin`` by metre offsets."""

    lon, lat = origin
    if north_m:
        lon, lat, _ = _GEOD.fwd(lon, lat, 0.0 if north_m > 0 else 180.0, abs(north_m))
    if east_m:
        lon, lat, _ = _GEOD.fwd(lon, lat, 90.0 if east_m > 0 else 270.0, abs(east_m))
    return lon, lat


def make_line(points_m: Iterable[Tuple[float, float]], origin=None, **properties) -> Feature:
    origin = origin or (BASE_LON, BASE_LAT)
    coords = [offset(e, n, origin) for e, n in points_m]
    return Feature(geometry=LineString(coords), properties=properties)


def make_square(east_m: float, north_m: float, size_m: float, **properties) -> Feature:
    corners = [
        (east_m, north_m),
        (east_m + size_m, north_m),
        (east_m + size_m, north_m + size_m),
        (east_m, north_m + size_m),
    ]
    return Feature(geometry=Polygon([offset(e, n) for e, n in corners]), properties=properties)


def line_geojson(
    points_m: Iterable[Tuple[float, float]], feature_id: Optional[Any] = None
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "LineString",
            "coordinates": [list(offset(e, n)) for e, n in points_m],
        },
    }
    if feature_id is not None:
        payload["id"] = feature_id
    return payload


def collection(*features: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def north_line(east_m: float = 0.0, length_m: float = 100.0, start_m: float = 0.0, **props) -> Feature:
    return make_line([(east_m, start_m), (east_m, start_m + length_m)], **props)


def east_line(north_m: float = 0.0, length_m: float = 100.0, start_m: float = 0.0, **props) -> Feature:
    return make_line([(start_m, north_m), (start_m + length_m, north_m)], **props)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def parallel_pair():
    """Two 100 m lines running side by side 1 m apart."""

    return [north_line(0.0, id="ml-1")], [north_line(1.0, id="osm-1")]


@pytest.fixture
def crossing_scene():
    """One detected path crossing a ground-truth path plus one stray on each side."""

    detected = [
        east_line(50.0, id="ml-cross"),
        north_line(1000.0, id="ml-stray"),
    ]
    ground_truth = [
        north_line(50.0, id="osm-cross"),
        north_line(-1000.0, id="osm-missed"),
    ]
    return detected, ground_truth


def tile_indices(lon: float, lat: float, zoom: int) -> Tuple[int, int]:
    """Return the slippy-map ``(x, y)`` of the tile containing a point."""

    n = 2**zoom
    x = int((lon + 180.0) / 360.0 * n)
    y = int((1.0 - math.asinh(math.tan(math.radians(lat))) / math.pi) / 2.0 * n)
    return x, y
