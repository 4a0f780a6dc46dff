"""Length-based confusion matrix between detected paths and ground truth."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
from typing import Any, Dict, Optional

from ..config import BUFFER_DISTANCE_M, MAX_COMPARISONS, PAIR_ORDER
from ..errors import EmptyInputError
from ..geometry import (
    IntersectionResult,
    LocalProjection,
    buffer_features,
    intersect_buffered,
    normalize_features,
    total_length_m,
)

LOGGER = logging.getLogger(__name__)

UNDEFINED_DISPLAY = "n/a"


@dataclass(frozen=True, slots=True)
class ConfusionMetrics:
    """Read-only accuracy report for one analysis run.

    Lengths are metres. Ratios are fractions in ``[0, 1]``, or ``None`` when
    their denominator is zero (see :func:`safe_ratio`).
    """

    tp_length_m: float
    fp_length_m: float
    fn_length_m: float
    detected_length_m: float
    ground_truth_length_m: float
    matched_length_m: float
    precision: Optional[float]
    recall: Optional[float]
    f1_score: Optional[float]
    iou: Optional[float]
    buffer_distance_m: float
    approximate: bool
    comparisons: int
    detected_count: int = 0
    ground_truth_count: int = 0
    failed_comparisons: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def as_display(self) -> Dict[str, Any]:
        """Return the report formatted for display (2 decimals, percentages)."""

        return {
            "TP": f"{self.tp_length_m:.2f}",
            "FP": f"{self.fp_length_m:.2f}",
            "FN": f"{self.fn_length_m:.2f}",
            "mlLength": f"{self.detected_length_m:.2f}",
            "osmLength": f"{self.ground_truth_length_m:.2f}",
            "precision": format_percentage(self.precision),
            "recall": format_percentage(self.recall),
            "f1Score": format_percentage(self.f1_score),
            "iou": format_percentage(self.iou),
            "bufferDistance": self.buffer_distance_m,
            "approximate": self.approximate,
            "comparisons": self.comparisons,
        }


def safe_ratio(numerator: float, denominator: float) -> Optional[float]:
    """Return ``numerator / denominator``, or None (undefined) for a zero denominator."""

    if denominator <= 0.0:
        return None
    return numerator / denominator


def f1_from(precision: Optional[float], recall: Optional[float]) -> Optional[float]:
    """Harmonic mean of precision and recall.

    Undefined if either input is undefined; 0.0 when both are zero.
    """

    if precision is None or recall is None:
        return None
    if precision + recall <= 0.0:
        return 0.0
    return 2.0 * precision * recall / (precision + recall)


def format_percentage(value: Optional[float]) -> str:
    if value is None:
        return UNDEFINED_DISPLAY
    return f"{value * 100.0:.2f}"


def confusion_from_overlap(
    detected_length_m: float,
    ground_truth_length_m: float,
    intersection: IntersectionResult,
    buffer_distance_m: float,
    *,
    detected_count: int = 0,
    ground_truth_count: int = 0,
) -> ConfusionMetrics:
    """Derive TP/FP/FN and ratios from lengths and corridor overlap.

    Matched length is estimated as ``overlap_area / buffer_distance``. The
    estimate can exceed either true length (self-overlapping corridors and
    the corridor width both inflate area), so TP is clamped to the shorter of
    the two totals. This keeps ``TP + FP == detected`` and
    ``TP + FN == ground truth`` exact.
    """

    if buffer_distance_m <= 0:
        raise ValueError("buffer_distance_m must be greater than zero")

    matched = max(intersection.intersection_area_m2 / buffer_distance_m, 0.0)
    tp = min(matched, detected_length_m, ground_truth_length_m)
    fp = max(0.0, detected_length_m - tp)
    fn = max(0.0, ground_truth_length_m - tp)

    precision = safe_ratio(tp, tp + fp)
    recall = safe_ratio(tp, tp + fn)
    return ConfusionMetrics(
        tp_length_m=tp,
        fp_length_m=fp,
        fn_length_m=fn,
        detected_length_m=detected_length_m,
        ground_truth_length_m=ground_truth_length_m,
        matched_length_m=matched,
        precision=precision,
        recall=recall,
        f1_score=f1_from(precision, recall),
        iou=safe_ratio(tp, tp + fp + fn),
        buffer_distance_m=buffer_distance_m,
        approximate=intersection.approximate,
        comparisons=intersection.comparisons,
        detected_count=detected_count,
        ground_truth_count=ground_truth_count,
        failed_comparisons=intersection.failed_comparisons,
    )


def compute_confusion_matrix(
    detected: Any,
    ground_truth: Any,
    *,
    buffer_distance_m: float = BUFFER_DISTANCE_M,
    max_comparisons: int = MAX_COMPARISONS,
    pair_order: str = PAIR_ORDER,
    seed: Optional[int] = None,
) -> ConfusionMetrics:
    """Compare detected paths with ground truth and return the accuracy report.

    Args:
        detected: ML-detected features in any form accepted by
            :func:`~footpath_audit.geometry.normalize_features`.
        ground_truth: Ground-truth (OSM) features in the same forms.
        buffer_distance_m: Matching tolerance in metres.
        max_comparisons: Pairwise intersection budget.
        pair_order: ``"row-major"`` or ``"shuffled"`` pair enumeration.
        seed: Random seed for the shuffled order.

    Returns:
        A :class:`ConfusionMetrics` report.

    Raises:
        EmptyInputError: If either input has no valid features. No geometric
            work is done in that case.
        ValueError: If ``buffer_distance_m`` is not positive or the budget
            arguments are invalid.
    """

    if buffer_distance_m <= 0:
        raise ValueError("buffer_distance_m must be greater than zero")

    LOGGER.info("Computing confusion matrix...")
    detected_features = normalize_features(detected)
    truth_features = normalize_features(ground_truth)
    LOGGER.info("Valid ML features: %d", len(detected_features))
    LOGGER.info("Valid OSM features: %d", len(truth_features))
    if not detected_features or not truth_features:
        raise EmptyInputError(
            "No valid LineString features found in one or both layers "
            f"(detected={len(detected_features)}, ground truth={len(truth_features)})"
        )

    detected_length = total_length_m(detected_features)
    truth_length = total_length_m(truth_features)
    LOGGER.info("ML total length: %.2fm", detected_length)
    LOGGER.info("OSM total length: %.2fm", truth_length)

    projection = LocalProjection.for_features(detected_features, truth_features)
    LOGGER.info("Buffering ML features...")
    buffered_detected = buffer_features(detected_features, buffer_distance_m, projection)
    LOGGER.info("Buffered %d ML features", len(buffered_detected))
    LOGGER.info("Buffering OSM features...")
    buffered_truth = buffer_features(truth_features, buffer_distance_m, projection)
    LOGGER.info("Buffered %d OSM features", len(buffered_truth))

    intersection = intersect_buffered(
        buffered_detected,
        buffered_truth,
        max_comparisons=max_comparisons,
        pair_order=pair_order,
        seed=seed,
    )
    metrics = confusion_from_overlap(
        detected_length,
        truth_length,
        intersection,
        buffer_distance_m,
        detected_count=len(detected_features),
        ground_truth_count=len(truth_features),
    )
    LOGGER.info("Analysis complete: %s", metrics.as_display())
    return metrics


__all__ = [
    "ConfusionMetrics",
    "UNDEFINED_DISPLAY",
    "compute_confusion_matrix",
    "confusion_from_overlap",
    "f1_from",
    "format_percentage",
    "safe_ratio",
]
