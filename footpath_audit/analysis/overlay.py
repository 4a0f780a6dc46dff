"""Tag features as true positive, false positive or false negative for display.

This is a full ``O(|detected| * |ground truth|)`` comparison with no budget.
Keep it off interactive paths and run it as an offline step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Sequence

from ..config import BUFFER_DISTANCE_M
from ..errors import SkippableFeatureError
from ..geometry import (
    BufferedFeature,
    Feature,
    LocalProjection,
    buffer_features,
    feature_collection,
    normalize_features,
    pair_overlap,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class OverlayClassification:
    """Lon/lat features grouped by confusion category."""

    true_positives: List[Feature] = field(default_factory=list)
    false_positives: List[Feature] = field(default_factory=list)
    false_negatives: List[Feature] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "tp_count": len(self.true_positives),
            "fp_count": len(self.false_positives),
            "fn_count": len(self.false_negatives),
        }

    def to_geojson(self) -> Dict[str, Dict[str, Any]]:
        return {
            "true_positives": feature_collection(self.true_positives),
            "false_positives": feature_collection(self.false_positives),
            "false_negatives": feature_collection(self.false_negatives),
        }


def classify_overlay(
    detected: Any,
    ground_truth: Any,
    *,
    buffer_distance_m: float = BUFFER_DISTANCE_M,
) -> OverlayClassification:
    """Partition features into TP intersections, unmatched detections and misses.

    A true positive entry is the corridor intersection itself, not the source
    feature. False positives and false negatives are the original, unbuffered
    features. Empty inputs produce empty categories.
    """

    detected_features = normalize_features(detected)
    truth_features = normalize_features(ground_truth)
    projection = LocalProjection.for_features(detected_features, truth_features)
    buffered_detected = buffer_features(detected_features, buffer_distance_m, projection)
    buffered_truth = buffer_features(truth_features, buffer_distance_m, projection)

    result = OverlayClassification()
    for candidate in buffered_detected:
        matched = False
        for reference in buffered_truth:
            overlap = _overlap_or_none(candidate, reference)
            if overlap is None:
                continue
            matched = True
            result.true_positives.append(
                Feature(
                    geometry=projection.to_lonlat(overlap),
                    properties={"category": "true_positive"},
                )
            )
        if not matched:
            result.false_positives.append(candidate.source)

    for reference in buffered_truth:
        if not _has_overlap(reference, buffered_detected):
            result.false_negatives.append(reference.source)

    LOGGER.info(
        "Overlay: %d true positives, %d false positives, %d false negatives",
        len(result.true_positives),
        len(result.false_positives),
        len(result.false_negatives),
    )
    return result


def _overlap_or_none(a: BufferedFeature, b: BufferedFeature):
    try:
        return pair_overlap(a, b)
    except SkippableFeatureError as exc:
        LOGGER.debug("Overlay pair skipped: %s", exc)
        return None


def _has_overlap(item: BufferedFeature, others: Sequence[BufferedFeature]) -> bool:
    return any(_overlap_or_none(item, other) is not None for other in others)


__all__ = ["OverlayClassification", "classify_overlay"]
