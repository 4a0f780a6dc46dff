"""Footpath accuracy audit package."""

from .analysis import (
    ConfusionMetrics,
    OverlayClassification,
    classify_overlay,
    compute_confusion_matrix,
    compute_tile_metrics,
    global_summary,
)
from .errors import EmptyInputError, FootpathAuditError, OverpassError
from .geometry import Feature, normalize_features

__version__ = "0.1.0"

__all__ = [
    "ConfusionMetrics",
    "OverlayClassification",
    "classify_overlay",
    "compute_confusion_matrix",
    "compute_tile_metrics",
    "global_summary",
    "EmptyInputError",
    "FootpathAuditError",
    "OverpassError",
    "Feature",
    "normalize_features",
]
