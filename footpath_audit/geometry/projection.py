"""Local metric projection shared by the buffering and overlap engines."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError
import shapely
from shapely.geometry.base import BaseGeometry

from .models import Feature

LonLat = Tuple[float, float]

LOGGER = logging.getLogger(__name__)

_WGS84 = CRS.from_epsg(4326)


@dataclass(frozen=True, slots=True)
class LocalProjection:
    """Forward/inverse transformers between WGS84 and a local metric CRS."""

    crs: CRS
    forward_transformer: Transformer
    inverse_transformer: Transformer

    @classmethod
    def for_crs(cls, target_crs: CRS) -> "LocalProjection":
        return cls(
            crs=target_crs,
            forward_transformer=Transformer.from_crs(
                _WGS84, target_crs, always_xy=True
            ),
            inverse_transformer=Transformer.from_crs(
                target_crs, _WGS84, always_xy=True
            ),
        )

    @classmethod
    def for_features(cls, *feature_sets: Iterable[Feature]) -> "LocalProjection":
        """Build a UTM projection centred on every coordinate in ``feature_sets``."""

        points: List[LonLat] = []
        for features in feature_sets:
            for feature in features:
                points.extend(_sample_coordinates(feature.geometry))
        return cls.for_crs(_local_utm_crs(points))

    def to_metric(self, geometry: BaseGeometry) -> BaseGeometry:
        return shapely.transform(geometry, self.forward_transformer.transform, interleaved=False)

    def to_lonlat(self, geometry: BaseGeometry) -> BaseGeometry:
        return shapely.transform(geometry, self.inverse_transformer.transform, interleaved=False)


def _local_utm_crs(points: Sequence[LonLat]) -> CRS:
    """Return the UTM zone CRS for the mean of ``points`` (Web Mercator fallback)."""

    if not points:
        LOGGER.debug("No coordinates to centre projection on; using EPSG:3857")
        return CRS.from_epsg(3857)
    lons = np.asarray([pt[0] for pt in points], dtype=float)
    lats = np.asarray([pt[1] for pt in points], dtype=float)
    mean_lon = float(np.mean(lons))
    mean_lat = float(np.mean(lats))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    if mean_lat >= 0:
        epsg = 32600 + zone
    else:
        epsg = 32700 + zone
    try:
        return CRS.from_epsg(epsg)
    except CRSError:
        return CRS.from_epsg(3857)


def _sample_coordinates(geometry: BaseGeometry) -> List[LonLat]:
    """Return the exterior coordinates of every part of ``geometry``."""

    if geometry.is_empty:
        return []
    parts = getattr(geometry, "geoms", None)
    if parts is not None:
        coords: List[LonLat] = []
        for part in parts:
            coords.extend(_sample_coordinates(part))
        return coords
    exterior = getattr(geometry, "exterior", None)
    source = exterior.coords if exterior is not None else geometry.coords
    return [(float(x), float(y)) for x, y, *_ in source]


__all__ = ["LocalProjection"]
