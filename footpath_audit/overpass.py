"""OpenStreetMap pedestrian ground truth via the Overpass API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from .config import OVERPASS_TIMEOUT_S, OVERPASS_URL, REQUEST_TIMEOUT
from .errors import OverpassError

LOGGER = logging.getLogger(__name__)

BBox = Tuple[float, float, float, float]

# Tag filters selecting walkable ways, including roads that carry sidewalks.
PEDESTRIAN_FILTERS = (
    '["highway"="footway"]',
    '["highway"="pedestrian"]',
    '["highway"="path"]',
    '["highway"="steps"]',
    '["footway"="sidewalk"]',
    '["sidewalk"="both"]',
    '["sidewalk"="left"]',
    '["sidewalk"="right"]',
    '["sidewalk"="yes"]',
)


def build_overpass_query(bbox: BBox, *, timeout_s: int = OVERPASS_TIMEOUT_S) -> str:
    """Return an Overpass QL query for pedestrian ways.

    Args:
        bbox: ``(min_lat, max_lat, min_lon, max_lon)``.
        timeout_s: Server-side timeout written into the query header.
    """

    min_lat, max_lat, min_lon, max_lon = bbox
    if min_lat >= max_lat or min_lon >= max_lon:
        raise ValueError("bbox must be (min_lat, max_lat, min_lon, max_lon)")
    area = f"({min_lat},{min_lon},{max_lat},{max_lon})"
    statements = "\n".join(f"  way{tag}{area};" for tag in PEDESTRIAN_FILTERS)
    return f"[out:json][timeout:{timeout_s}];\n(\n{statements}\n);\nout geom;\n"


def overpass_to_feature_collection(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert an ``out geom`` response into a GeoJSON FeatureCollection.

    Only ways with at least two geometry nodes are kept; nodes and relations
    are ignored.
    """

    features: List[Dict[str, Any]] = []
    for element in payload.get("elements") or []:
        if element.get("type") != "way":
            continue
        nodes: Sequence[Mapping[str, Any]] = element.get("geometry") or []
        coordinates = [
            [float(node["lon"]), float(node["lat"])]
            for node in nodes
            if "lon" in node and "lat" in node
        ]
        if len(coordinates) < 2:
            LOGGER.debug("Skipping way %s with %d nodes", element.get("id"), len(coordinates))
            continue
        features.append(
            {
                "type": "Feature",
                "id": element.get("id"),
                "properties": dict(element.get("tags") or {}),
                "geometry": {"type": "LineString", "coordinates": coordinates},
            }
        )
    return {"type": "FeatureCollection", "features": features}


def fetch_overpass_ground_truth(
    bbox: BBox,
    *,
    session: Optional[requests.Session] = None,
    url: str = OVERPASS_URL,
    timeout: float = REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    """Download pedestrian ways inside ``bbox`` as a GeoJSON FeatureCollection.

    Raises:
        OverpassError: On transport errors, non-2xx responses or bad JSON.
    """

    query = build_overpass_query(bbox)
    post = session.post if session is not None else requests.post
    LOGGER.debug("POST %s bbox=%s", url, bbox)
    try:
        response = post(url, data={"data": query}, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise OverpassError(f"Overpass API request failed: {exc}") from exc
    except ValueError as exc:
        raise OverpassError("Overpass API returned invalid JSON") from exc
    LOGGER.info("Received %d OSM elements", len(payload.get("elements") or []))
    return overpass_to_feature_collection(payload)


__all__ = [
    "PEDESTRIAN_FILTERS",
    "build_overpass_query",
    "fetch_overpass_ground_truth",
    "overpass_to_feature_collection",
]
