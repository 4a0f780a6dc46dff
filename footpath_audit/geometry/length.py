"""Real-world length of line features."""

from __future__ import annotations

import logging
from typing import Iterable

from pyproj import Geod
from shapely.errors import GEOSException
from shapely.geometry import LineString

from .models import Feature

LOGGER = logging.getLogger(__name__)

_GEOD = Geod(ellps="WGS84")


def line_length_m(line: LineString) -> float:
    """Return the geodesic length of a lon/lat ``LineString`` in metres."""

    return abs(float(_GEOD.geometry_length(line)))


def feature_length_m(feature: Feature) -> float:
    """Return the length of a line feature; other geometry types measure zero.

    Each part of a ``MultiLineString`` is measured independently so a broken
    part only loses its own contribution.
    """

    geometry = feature.geometry
    if geometry.geom_type == "LineString":
        return line_length_m(geometry)
    if geometry.geom_type == "MultiLineString":
        total = 0.0
        for part in geometry.geoms:
            try:
                total += line_length_m(part)
            except (GEOSException, ValueError) as exc:
                LOGGER.warning("Skipping unmeasurable line part: %s", exc)
        return total
    LOGGER.debug("No length for %s feature", geometry.geom_type)
    return 0.0


def total_length_m(features: Iterable[Feature]) -> float:
    """Sum the length of every line feature, skipping ones that fail to measure."""

    total = 0.0
    for feature in features:
        try:
            total += feature_length_m(feature)
        except (GEOSException, ValueError, TypeError) as exc:
            LOGGER.warning("Error calculating length for feature %s: %s", _label(feature), exc)
    return max(total, 0.0)


def geodesic_area_m2(feature: Feature) -> float:
    """Return the ellipsoidal area of a polygonal lon/lat feature (0.0 for lines)."""

    if feature.geometry.geom_type not in ("Polygon", "MultiPolygon"):
        return 0.0
    area, _perimeter = _GEOD.geometry_area_perimeter(feature.geometry)
    return abs(float(area))


def _label(feature: Feature) -> str:
    ident = feature.properties.get("id")
    return f"{feature.geometry_type}#{ident}" if ident is not None else feature.geometry_type


__all__ = ["feature_length_m", "geodesic_area_m2", "line_length_m", "total_length_m"]
