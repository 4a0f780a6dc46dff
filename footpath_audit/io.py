"""Reading GeoJSON inputs and writing the analysis output bundle."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .analysis.overlay import OverlayClassification
from .geometry import Feature, feature_collection

PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)

GLOBAL_METRICS_FILE = "confusion_matrix_global_polygon_based.json"
TILE_METRICS_FILE = "confusion_matrix_per_tile_polygon_based.json"
TILE_METRICS_CSV = "per_tile_metrics.csv"
TRUE_POSITIVES_FILE = "true_positives_polygon_based.geojson"
FALSE_POSITIVES_FILE = "false_positives_polygon_based.geojson"
FALSE_NEGATIVES_FILE = "false_negatives_polygon_based.geojson"
DETECTED_POLYGONS_FILE = "ml_polygons.geojson"
GROUND_TRUTH_FILE = "osm_ground_truth.geojson"


def read_geojson(path: PathLike) -> Dict[str, Any]:
    """Load a GeoJSON document.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON or not a JSON object.
    """

    with Path(path).open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a GeoJSON object")
    return payload


def write_json(path: PathLike, payload: Any) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    return output_path


def write_features(path: PathLike, features: Sequence[Feature]) -> Path:
    return write_json(path, feature_collection(features))


def write_tile_metrics_csv(path: PathLike, rows: Sequence[Mapping[str, Any]]) -> Path:
    """Write per-tile rows as CSV (one row per tile) for scatter plotting."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(list(rows)).to_csv(output_path, index=False)
    return output_path


def write_analysis_outputs(
    output_dir: PathLike,
    summary: Mapping[str, Any],
    *,
    tile_rows: Optional[Sequence[Mapping[str, Any]]] = None,
    overlay: Optional[OverlayClassification] = None,
    detected_polygons: Sequence[Feature] = (),
    ground_truth: Sequence[Feature] = (),
) -> List[Path]:
    """Write every dashboard artefact available into ``output_dir``.

    Returns:
        Paths of the files written, in write order.
    """

    directory = Path(output_dir)
    written = [write_json(directory / GLOBAL_METRICS_FILE, dict(summary))]
    if tile_rows is not None:
        written.append(write_json(directory / TILE_METRICS_FILE, list(tile_rows)))
        written.append(write_tile_metrics_csv(directory / TILE_METRICS_CSV, tile_rows))
    if overlay is not None:
        written.append(write_features(directory / TRUE_POSITIVES_FILE, overlay.true_positives))
        written.append(write_features(directory / FALSE_POSITIVES_FILE, overlay.false_positives))
        written.append(write_features(directory / FALSE_NEGATIVES_FILE, overlay.false_negatives))
    if detected_polygons:
        written.append(write_features(directory / DETECTED_POLYGONS_FILE, detected_polygons))
    if ground_truth:
        written.append(write_features(directory / GROUND_TRUTH_FILE, ground_truth))
    LOGGER.info("Wrote %d output files to %s", len(written), directory)
    return written


__all__ = [
    "DETECTED_POLYGONS_FILE",
    "FALSE_NEGATIVES_FILE",
    "FALSE_POSITIVES_FILE",
    "GLOBAL_METRICS_FILE",
    "GROUND_TRUTH_FILE",
    "TILE_METRICS_CSV",
    "TILE_METRICS_FILE",
    "TRUE_POSITIVES_FILE",
    "read_geojson",
    "write_analysis_outputs",
    "write_features",
    "write_json",
    "write_tile_metrics_csv",
]
