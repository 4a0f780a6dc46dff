"""Extract well-formed features from layers, GeoJSON mappings and collections.

Inputs form a closed set of variants rather than being probed for arbitrary
capabilities:

* :class:`FeatureCollectionSource` wraps a GeoJSON ``FeatureCollection``.
* :class:`FeatureSource` wraps a single GeoJSON ``Feature``.
* :class:`LayerSource` wraps opaque layer objects together with the callable
  that extracts a GeoJSON mapping from each of them.

Plain GeoJSON mappings, :class:`~footpath_audit.geometry.models.Feature`
instances and lists of any of the above are accepted as shorthands.
Entries that fail validation are dropped with a warning; normalisation never
raises for bad data.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from shapely.errors import GEOSException
from shapely.geometry import shape

from ..errors import SkippableFeatureError
from .models import SUPPORTED_GEOMETRY_TYPES, Feature

LOGGER = logging.getLogger(__name__)


def geo_interface_extractor(item: Any) -> Optional[Mapping[str, Any]]:
    """Return the ``__geo_interface__`` mapping of ``item`` when it has one."""

    return getattr(item, "__geo_interface__", None)


@dataclass(frozen=True, slots=True)
class FeatureCollectionSource:
    payload: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class FeatureSource:
    payload: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class LayerSource:
    """Renderable layer objects plus the function that turns each into GeoJSON."""

    items: Sequence[Any]
    extractor: Callable[[Any], Any] = geo_interface_extractor


class _Collector:
    """Accumulates features while rejecting repeated geometry references."""

    def __init__(self) -> None:
        self.features: List[Feature] = []
        # Holding the objects keeps their ids stable for the whole pass.
        self._seen: Dict[int, Any] = {}
        self.dropped = 0

    def add(self, feature: Feature, origin: Any) -> None:
        key = id(origin)
        if key in self._seen:
            LOGGER.debug("Skipping repeated reference to geometry %#x", key)
            return
        self._seen[key] = origin
        self.features.append(feature)

    def drop(self, reason: str, entry: Any) -> None:
        self.dropped += 1
        LOGGER.warning("Skipping feature: %s (%s)", reason, _describe(entry))


def normalize_features(source: Any) -> List[Feature]:
    """Return the valid features contained in ``source`` in encounter order."""

    collector = _Collector()
    _visit(source, collector)
    if collector.dropped:
        LOGGER.info(
            "Normalised %d features (%d dropped)",
            len(collector.features),
            collector.dropped,
        )
    return collector.features


def feature_from_geojson(payload: Mapping[str, Any]) -> Feature:
    """Build a :class:`Feature` from a GeoJSON ``Feature`` mapping.

    Raises:
        SkippableFeatureError: If the geometry is missing, of an unsupported
            type, empty, or cannot be parsed.
    """

    geometry = payload.get("geometry")
    if not isinstance(geometry, Mapping):
        raise SkippableFeatureError("feature has no geometry object")
    geom_type = geometry.get("type")
    if geom_type not in SUPPORTED_GEOMETRY_TYPES:
        raise SkippableFeatureError(f"unsupported geometry type {geom_type!r}")
    try:
        parsed = shape(geometry)
    except (GEOSException, ValueError, TypeError, IndexError, KeyError) as exc:
        raise SkippableFeatureError(f"malformed {geom_type} coordinates") from exc
    if parsed.is_empty:
        raise SkippableFeatureError(f"empty {geom_type}")

    properties = dict(payload.get("properties") or {})
    if "id" in payload and "id" not in properties:
        properties["id"] = payload["id"]
    return Feature(geometry=parsed, properties=properties)


def _visit(source: Any, collector: _Collector) -> None:
    if source is None:
        return
    if isinstance(source, Feature):
        problem = _geometry_problem(source.geometry)
        if problem is not None:
            collector.drop(problem, source)
        else:
            collector.add(source, source.geometry)
    elif isinstance(source, (FeatureCollectionSource, FeatureSource)):
        _visit_mapping(source.payload, collector)
    elif isinstance(source, LayerSource):
        _visit_layer(source, collector)
    elif isinstance(source, Mapping):
        _visit_mapping(source, collector)
    elif isinstance(source, (list, tuple)):
        for entry in source:
            _visit(entry, collector)
    else:
        collector.drop("unsupported input type", source)


def _visit_layer(layer: LayerSource, collector: _Collector) -> None:
    for item in layer.items:
        try:
            payload = layer.extractor(item)
        except Exception as exc:  # noqa: BLE001 - extractor failures skip the item
            collector.drop(f"layer extraction failed: {exc}", item)
            continue
        if payload is None:
            collector.drop("layer item has no vector geometry", item)
            continue
        _visit(payload, collector)


def _visit_mapping(payload: Mapping[str, Any], collector: _Collector) -> None:
    kind = payload.get("type")
    if kind == "FeatureCollection":
        members = payload.get("features")
        if not isinstance(members, (list, tuple)):
            collector.drop("collection without a features list", payload)
            return
        for member in members:
            if isinstance(member, Mapping):
                _visit_feature(member, collector)
            else:
                collector.drop("collection member is not a mapping", member)
    elif kind == "Feature":
        _visit_feature(payload, collector)
    elif kind in SUPPORTED_GEOMETRY_TYPES:
        # Bare geometry, e.g. the __geo_interface__ of a shapely object.
        _visit_feature({"type": "Feature", "geometry": payload}, collector)
    else:
        collector.drop(f"unrecognised GeoJSON type {kind!r}", payload)


def _visit_feature(payload: Mapping[str, Any], collector: _Collector) -> None:
    try:
        feature = feature_from_geojson(payload)
    except SkippableFeatureError as exc:
        collector.drop(str(exc), payload)
        return
    collector.add(feature, payload["geometry"])


def _geometry_problem(geometry: Any) -> Optional[str]:
    """Return why a parsed geometry is unusable, or None when it is accepted."""

    if geometry is None:
        return "feature has no geometry object"
    geom_type = getattr(geometry, "geom_type", None)
    if geom_type not in SUPPORTED_GEOMETRY_TYPES:
        return f"unsupported geometry type {geom_type!r}"
    if geometry.is_empty:
        return f"empty {geom_type}"
    return None


def _describe(entry: Any) -> str:
    if isinstance(entry, Mapping):
        ident = entry.get("id")
        if ident is None:
            ident = (entry.get("properties") or {}).get("id")
        return f"type={entry.get('type')!r} id={ident!r}"
    if isinstance(entry, Feature):
        return f"Feature id={entry.properties.get('id')!r}"
    return type(entry).__name__


__all__ = [
    "FeatureCollectionSource",
    "FeatureSource",
    "LayerSource",
    "feature_from_geojson",
    "geo_interface_extractor",
    "normalize_features",
]
