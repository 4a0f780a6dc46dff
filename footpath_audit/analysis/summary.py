"""Whole-area summary combining the numeric report and the overlay counts."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from shapely.errors import GEOSException
from shapely.ops import unary_union

from ..geometry import Feature, geodesic_area_m2, total_length_m
from .metrics import ConfusionMetrics
from .overlay import OverlayClassification
from .tiles import clip_features

LOGGER = logging.getLogger(__name__)


def length_within_m(lines: Sequence[Feature], polygons: Sequence[Feature]) -> float:
    """Return the length of ``lines`` falling inside the union of ``polygons``."""

    areas = [f.geometry for f in polygons if f.geometry.geom_type in ("Polygon", "MultiPolygon")]
    if not lines or not areas:
        return 0.0
    try:
        coverage = unary_union(areas)
    except GEOSException as exc:
        LOGGER.warning("Could not merge detected polygons: %s", exc)
        return 0.0
    return total_length_m(clip_features(lines, coverage))


def global_summary(
    metrics: ConfusionMetrics,
    *,
    detected: Sequence[Feature] = (),
    ground_truth: Sequence[Feature] = (),
    detected_polygons: Sequence[Feature] = (),
    overlay: Optional[OverlayClassification] = None,
) -> Dict[str, Any]:
    """Return the global metrics document consumed by the dashboard."""

    counts = overlay.counts() if overlay is not None else {}
    return {
        "precision": metrics.precision,
        "recall": metrics.recall,
        "f1_score": metrics.f1_score,
        "iou": metrics.iou,
        "tp_length_m": metrics.tp_length_m,
        "fp_length_m": metrics.fp_length_m,
        "fn_length_m": metrics.fn_length_m,
        "tp_count": counts.get("tp_count"),
        "fp_count": counts.get("fp_count"),
        "fn_count": counts.get("fn_count"),
        "ml_total_length_m": metrics.detected_length_m,
        "ml_in_polygon_length_m": length_within_m(detected, detected_polygons),
        "osm_total_length_m": metrics.ground_truth_length_m,
        "osm_in_polygon_length_m": length_within_m(ground_truth, detected_polygons),
        "polygon_count": len(detected_polygons),
        "polygon_area_sqm": sum(geodesic_area_m2(f) for f in detected_polygons),
        "buffer_distance_m": metrics.buffer_distance_m,
        "matched_length_m": metrics.matched_length_m,
        "approximate": metrics.approximate,
        "comparisons": metrics.comparisons,
    }


__all__ = ["global_summary", "length_within_m"]
