"""Accuracy analysis built on the geometry engines."""

from .metrics import (
    ConfusionMetrics,
    compute_confusion_matrix,
    confusion_from_overlap,
    f1_from,
    safe_ratio,
)
from .overlay import OverlayClassification, classify_overlay
from .tiles import (
    Tile,
    compute_tile_metrics,
    heatmap_color,
    read_tile_index,
    tile_bounds,
    tiles_with_data,
)
from .summary import global_summary

__all__ = [
    "ConfusionMetrics",
    "compute_confusion_matrix",
    "confusion_from_overlap",
    "f1_from",
    "safe_ratio",
    "OverlayClassification",
    "classify_overlay",
    "Tile",
    "compute_tile_metrics",
    "heatmap_color",
    "read_tile_index",
    "tile_bounds",
    "tiles_with_data",
    "global_summary",
]
