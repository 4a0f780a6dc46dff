"""Dataclasses describing audit geometry inputs and intermediate results."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Sequence

from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

LINE_TYPES = frozenset({"LineString", "MultiLineString"})
SUPPORTED_GEOMETRY_TYPES = frozenset({"LineString", "MultiLineString", "Polygon"})


@dataclass(frozen=True, slots=True)
class Feature:
    """A lon/lat geometry plus its read-only property mapping."""

    geometry: BaseGeometry
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(
                self, "properties", MappingProxyType(dict(self.properties or {}))
            )

    @property
    def geometry_type(self) -> str:
        return self.geometry.geom_type

    @property
    def is_line(self) -> bool:
        return self.geometry.geom_type in LINE_TYPES

    def to_geojson(self) -> Dict[str, Any]:
        """Return the feature as a GeoJSON ``Feature`` mapping."""
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": mapping(self.geometry),
        }


FeatureSet = Sequence[Feature]


@dataclass(frozen=True, slots=True)
class BufferedFeature:
    """Corridor polygon (local metric CRS) derived from a source feature."""

    source: Feature
    polygon: BaseGeometry

    @property
    def area_m2(self) -> float:
        return float(self.polygon.area)


@dataclass(frozen=True, slots=True)
class IntersectionResult:
    """Aggregate overlap between two corridor sets."""

    intersection_area_m2: float
    total_area_a_m2: float
    total_area_b_m2: float
    comparisons: int
    approximate: bool
    total_pairs: int = 0
    failed_comparisons: int = 0
    empty_comparisons: int = 0


def feature_collection(features: Sequence[Feature]) -> Dict[str, Any]:
    """Wrap features in a GeoJSON ``FeatureCollection`` mapping."""

    return {
        "type": "FeatureCollection",
        "features": [feature.to_geojson() for feature in features],
    }


__all__ = [
    "BufferedFeature",
    "Feature",
    "FeatureSet",
    "IntersectionResult",
    "LINE_TYPES",
    "SUPPORTED_GEOMETRY_TYPES",
    "feature_collection",
]
