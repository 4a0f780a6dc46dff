"""Per-tile accuracy breakdown over slippy-map imagery tiles."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
from shapely.errors import GEOSException
from shapely.geometry import Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, unary_union

from ..config import BUFFER_DISTANCE_M, MAX_COMPARISONS, PAIR_ORDER, TILE_KEEP_EMPTY_ROWS, TILE_ZOOM
from ..errors import TileIndexFormatError
from ..geometry import (
    Feature,
    IntersectionResult,
    LocalProjection,
    buffer_features,
    intersect_buffered,
    normalize_features,
    total_length_m,
)
from .metrics import ConfusionMetrics, confusion_from_overlap

PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)

_REQUIRED_INDEX_COLUMNS = ("xtile", "ytile")

_NO_DATA_COLOR = "#cccccc"


@dataclass(frozen=True, slots=True)
class Tile:
    tile_id: int
    xtile: int
    ytile: int
    zoom: int = TILE_ZOOM

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return tile_bounds(self.xtile, self.ytile, self.zoom)

    @property
    def center(self) -> Tuple[float, float]:
        """Return the tile centre as ``(lat, lon)``."""
        west, south, east, north = self.bounds
        return (south + north) / 2.0, (west + east) / 2.0


def tile_to_lon(x: float, zoom: int) -> float:
    return x / (2.0**zoom) * 360.0 - 180.0


def tile_to_lat(y: float, zoom: int) -> float:
    n = math.pi - 2.0 * math.pi * y / (2.0**zoom)
    return math.degrees(math.atan(math.sinh(n)))


def tile_bounds(x: int, y: int, zoom: int) -> Tuple[float, float, float, float]:
    """Return ``(west, south, east, north)`` of a Web Mercator tile."""

    west = tile_to_lon(x, zoom)
    east = tile_to_lon(x + 1, zoom)
    north = tile_to_lat(y, zoom)
    south = tile_to_lat(y + 1, zoom)
    return west, south, east, north


def tile_polygon(x: int, y: int, zoom: int) -> Polygon:
    return box(*tile_bounds(x, y, zoom))


def read_tile_index(path: PathLike, *, zoom: int = TILE_ZOOM) -> List[Tile]:
    """Load tiles from the imagery index CSV.

    The CSV carries at least ``xtile`` and ``ytile`` columns; ``idd`` and
    ``zoom`` are used when present.

    Raises:
        TileIndexFormatError: If required columns are missing.
        FileNotFoundError: If ``path`` does not exist.
    """

    frame = pd.read_csv(path)
    frame.columns = [str(col).strip() for col in frame.columns]
    missing = [col for col in _REQUIRED_INDEX_COLUMNS if col not in frame.columns]
    if missing:
        raise TileIndexFormatError(
            f"Tile index {path} is missing columns: {', '.join(missing)}"
        )
    frame = frame.dropna(subset=list(_REQUIRED_INDEX_COLUMNS))

    tiles: List[Tile] = []
    for position, row in enumerate(frame.itertuples(index=False)):
        values = row._asdict()
        tile_id = values.get("idd")
        tile_zoom = values.get("zoom")
        tiles.append(
            Tile(
                tile_id=int(tile_id) if _present(tile_id) else position,
                xtile=int(values["xtile"]),
                ytile=int(values["ytile"]),
                zoom=int(tile_zoom) if _present(tile_zoom) else zoom,
            )
        )
    LOGGER.info("Loaded %d tiles from %s", len(tiles), path)
    return tiles


def clip_features(features: Iterable[Feature], clip: BaseGeometry) -> List[Feature]:
    """Return the parts of ``features`` inside ``clip``, keeping their dimension."""

    clipped: List[Feature] = []
    for feature in features:
        geometry = feature.geometry
        try:
            if not geometry.intersects(clip):
                continue
            part = _same_dimension(geometry.intersection(clip), geometry.geom_type)
        except GEOSException as exc:
            LOGGER.warning("Could not clip %s feature: %s", feature.geometry_type, exc)
            continue
        if part is not None:
            clipped.append(Feature(geometry=part, properties=feature.properties))
    return clipped


def compute_tile_metrics(
    detected: Any,
    ground_truth: Any,
    tiles: Sequence[Tile],
    *,
    detected_polygons: Any = None,
    buffer_distance_m: float = BUFFER_DISTANCE_M,
    max_comparisons: int = MAX_COMPARISONS,
    pair_order: str = PAIR_ORDER,
    seed: Optional[int] = None,
    keep_empty: bool = TILE_KEEP_EMPTY_ROWS,
) -> List[Dict[str, Any]]:
    """Run the confusion-matrix engine separately inside every tile.

    Tiles where only one side has features still report lengths; their
    undefined ratios are ``None``. Tiles with no features on either side are
    omitted unless ``keep_empty`` is set.
    """

    detected_features = normalize_features(detected)
    truth_features = normalize_features(ground_truth)
    polygon_features = normalize_features(detected_polygons)
    projection = LocalProjection.for_features(detected_features, truth_features)

    rows: List[Dict[str, Any]] = []
    for tile in tiles:
        clip = tile_polygon(tile.xtile, tile.ytile, tile.zoom)
        tile_detected = clip_features(detected_features, clip)
        tile_truth = clip_features(truth_features, clip)
        polygon_count = sum(1 for f in polygon_features if f.geometry.intersects(clip))
        if not tile_detected and not tile_truth and not keep_empty:
            continue
        metrics = _tile_confusion(
            tile_detected,
            tile_truth,
            projection,
            buffer_distance_m=buffer_distance_m,
            max_comparisons=max_comparisons,
            pair_order=pair_order,
            seed=seed,
        )
        rows.append(_tile_row(tile, metrics, len(tile_detected), polygon_count, len(tile_truth)))
    LOGGER.info("Computed metrics for %d of %d tiles", len(rows), len(tiles))
    return rows


def tiles_with_data(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        row for row in rows if row.get("osm_count", 0) > 0 or row.get("ml_network_count", 0) > 0
    ]


def metric_range(
    rows: Iterable[Dict[str, Any]], metric: str
) -> Optional[Tuple[float, float]]:
    """Return ``(min, max)`` of the defined values of ``metric`` across rows."""

    values = [float(row[metric]) for row in rows if _present(row.get(metric))]
    if not values:
        return None
    return min(values), max(values)


def heatmap_color(value: Optional[float], vmin: float, vmax: float) -> str:
    """Map ``value`` onto a red -> yellow -> green scale between vmin and vmax.

    Undefined values are grey. A flat range maps every value to mid-scale.
    """

    if not _present(value):
        return _NO_DATA_COLOR
    span = vmax - vmin
    normalized = 0.5 if span <= 0 else (float(value) - vmin) / span
    normalized = min(max(normalized, 0.0), 1.0)
    if normalized < 0.5:
        r = 215
        g = math.floor(115 + (224 - 115) * (normalized * 2))
        b = math.floor(39 + (139 - 39) * (normalized * 2))
    else:
        r = math.floor(254 - (254 - 26) * ((normalized - 0.5) * 2))
        g = math.floor(224 - (224 - 152) * ((normalized - 0.5) * 2))
        b = math.floor(139 - (139 - 80) * ((normalized - 0.5) * 2))
    return f"rgb({r}, {g}, {b})"


def _tile_confusion(
    detected: List[Feature],
    truth: List[Feature],
    projection: LocalProjection,
    *,
    buffer_distance_m: float,
    max_comparisons: int,
    pair_order: str,
    seed: Optional[int],
) -> ConfusionMetrics:
    detected_length = total_length_m(detected)
    truth_length = total_length_m(truth)
    if detected and truth:
        intersection = intersect_buffered(
            buffer_features(detected, buffer_distance_m, projection),
            buffer_features(truth, buffer_distance_m, projection),
            max_comparisons=max_comparisons,
            pair_order=pair_order,
            seed=seed,
            progress_interval=0,
        )
    else:
        intersection = IntersectionResult(
            intersection_area_m2=0.0,
            total_area_a_m2=0.0,
            total_area_b_m2=0.0,
            comparisons=0,
            approximate=False,
        )
    return confusion_from_overlap(
        detected_length,
        truth_length,
        intersection,
        buffer_distance_m,
        detected_count=len(detected),
        ground_truth_count=len(truth),
    )


def _tile_row(
    tile: Tile,
    metrics: ConfusionMetrics,
    network_count: int,
    polygon_count: int,
    osm_count: int,
) -> Dict[str, Any]:
    lat, lon = tile.center
    return {
        "tile_id": tile.tile_id,
        "xtile": tile.xtile,
        "ytile": tile.ytile,
        "zoom": tile.zoom,
        "lat": lat,
        "lon": lon,
        "ml_network_count": network_count,
        "ml_polygon_count": polygon_count,
        "osm_count": osm_count,
        "tp_length_m": metrics.tp_length_m,
        "fp_length_m": metrics.fp_length_m,
        "fn_length_m": metrics.fn_length_m,
        "precision": metrics.precision,
        "recall": metrics.recall,
        "f1_score": metrics.f1_score,
        "iou": metrics.iou,
        "approximate": metrics.approximate,
    }


def _same_dimension(geometry: BaseGeometry, source_type: str) -> Optional[BaseGeometry]:
    """Drop lower-dimensional leftovers (points, touching edges) from a clip."""

    if geometry.is_empty:
        return None
    wanted_dim = 1 if source_type in ("LineString", "MultiLineString") else 2
    if geometry.geom_type == "GeometryCollection":
        parts = [g for g in geometry.geoms if _dimension(g) == wanted_dim]
        if not parts:
            return None
        if wanted_dim == 1:
            return linemerge(parts)
        return unary_union(parts)
    if _dimension(geometry) != wanted_dim:
        return None
    return geometry


def _dimension(geometry: BaseGeometry) -> int:
    if geometry.geom_type in ("Point", "MultiPoint"):
        return 0
    if geometry.geom_type in ("LineString", "MultiLineString", "LinearRing"):
        return 1
    return 2


def _present(value: Any) -> bool:
    if value is None:
        return False
    try:
        return not math.isnan(float(value))
    except (TypeError, ValueError):
        return False


__all__ = [
    "Tile",
    "clip_features",
    "compute_tile_metrics",
    "heatmap_color",
    "metric_range",
    "read_tile_index",
    "tile_bounds",
    "tile_polygon",
    "tile_to_lat",
    "tile_to_lon",
    "tiles_with_data",
]
