"""Expand features into matching corridors in a local metric CRS."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from shapely.errors import GEOSException

from ..config import BUFFER_RESOLUTION
from ..errors import SkippableFeatureError
from .models import BufferedFeature, Feature
from .projection import LocalProjection

LOGGER = logging.getLogger(__name__)


def buffer_feature(
    feature: Feature,
    distance_m: float,
    projection: LocalProjection,
    *,
    resolution: int = BUFFER_RESOLUTION,
) -> BufferedFeature:
    """Return the corridor polygon around ``feature``.

    Raises:
        SkippableFeatureError: If projection or buffering fails or yields an
            empty polygon.
    """

    try:
        metric = projection.to_metric(feature.geometry)
        polygon = metric.buffer(distance_m, quad_segs=resolution)
    except (GEOSException, ValueError, TypeError) as exc:
        raise SkippableFeatureError(f"could not buffer {feature.geometry_type}") from exc
    if polygon.is_empty or not polygon.is_valid:
        raise SkippableFeatureError(f"degenerate corridor for {feature.geometry_type}")
    return BufferedFeature(source=feature, polygon=polygon)


def buffer_features(
    features: Sequence[Feature],
    distance_m: float,
    projection: Optional[LocalProjection] = None,
    *,
    resolution: int = BUFFER_RESOLUTION,
) -> List[BufferedFeature]:
    """Buffer every feature by ``distance_m`` metres, dropping failures.

    The output keeps encounter order but is not index-aligned with ``features``
    once failures are dropped; use :attr:`BufferedFeature.source` instead.
    """

    if distance_m <= 0:
        raise ValueError("distance_m must be greater than zero")
    if projection is None:
        projection = LocalProjection.for_features(features)

    buffered: List[BufferedFeature] = []
    for feature in features:
        try:
            buffered.append(
                buffer_feature(feature, distance_m, projection, resolution=resolution)
            )
        except SkippableFeatureError as exc:
            LOGGER.warning("Could not buffer feature: %s", exc)
    if len(buffered) != len(features):
        LOGGER.info("Buffered %d of %d features", len(buffered), len(features))
    return buffered


__all__ = ["buffer_feature", "buffer_features"]
