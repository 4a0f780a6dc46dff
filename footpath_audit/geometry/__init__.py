"""Geometry engines: normalisation, length, buffering and corridor overlap."""

from .models import (
    BufferedFeature,
    Feature,
    FeatureSet,
    IntersectionResult,
    feature_collection,
)
from .normalize import (
    FeatureCollectionSource,
    FeatureSource,
    LayerSource,
    feature_from_geojson,
    normalize_features,
)
from .projection import LocalProjection
from .length import feature_length_m, geodesic_area_m2, total_length_m
from .buffering import buffer_feature, buffer_features
from .intersection import PAIR_ORDERS, intersect_buffered, pair_overlap, pair_overlap_m2

__all__ = [
    "BufferedFeature",
    "Feature",
    "FeatureSet",
    "IntersectionResult",
    "feature_collection",
    "FeatureCollectionSource",
    "FeatureSource",
    "LayerSource",
    "feature_from_geojson",
    "normalize_features",
    "LocalProjection",
    "feature_length_m",
    "geodesic_area_m2",
    "total_length_m",
    "buffer_feature",
    "buffer_features",
    "PAIR_ORDERS",
    "intersect_buffered",
    "pair_overlap",
    "pair_overlap_m2",
]
