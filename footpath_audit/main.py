"""Command line entry point for the footpath accuracy audit."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .analysis import (
    ConfusionMetrics,
    OverlayClassification,
    classify_overlay,
    compute_confusion_matrix,
    compute_tile_metrics,
    global_summary,
    read_tile_index,
)
from .config import (
    BUFFER_DISTANCE_M,
    DEFAULT_HEATMAP_METRIC,
    MAX_COMPARISONS,
    PAIR_ORDER,
    SAMPLE_DATASETS,
    TILE_METRICS,
)
from .errors import EmptyInputError, OverpassError, TileIndexFormatError
from .geometry import PAIR_ORDERS, Feature, normalize_features
from .io import read_geojson, write_analysis_outputs
from .overpass import fetch_overpass_ground_truth
from .visualization import create_confusion_map


def _build_parser() -> argparse.ArgumentParser:
    """Return the CLI argument parser for the audit tool."""

    parser = argparse.ArgumentParser(
        description=(
            "Compare ML-detected pedestrian paths with OpenStreetMap ground"
            " truth and report length-based precision, recall, F1 and IoU."
        )
    )
    parser.add_argument("--detected", type=Path, required=True, help="Detected network GeoJSON")
    parser.add_argument(
        "--detected-polygons",
        type=Path,
        help="Optional detected sidewalk polygons GeoJSON (summary and map only)",
    )
    truth = parser.add_mutually_exclusive_group(required=True)
    truth.add_argument("--ground-truth", type=Path, help="Ground-truth GeoJSON")
    truth.add_argument(
        "--overpass-bbox",
        type=float,
        nargs=4,
        metavar=("MIN_LAT", "MAX_LAT", "MIN_LON", "MAX_LON"),
        help="Download OSM pedestrian ways inside this box instead",
    )
    parser.add_argument(
        "--buffer-m",
        type=float,
        default=BUFFER_DISTANCE_M,
        help=f"Matching tolerance in metres (default: {BUFFER_DISTANCE_M:g})",
    )
    parser.add_argument(
        "--max-comparisons",
        type=int,
        default=MAX_COMPARISONS,
        help=f"Pairwise intersection budget (default: {MAX_COMPARISONS})",
    )
    parser.add_argument("--pair-order", choices=PAIR_ORDERS, default=PAIR_ORDER)
    parser.add_argument("--seed", type=int, help="Seed for --pair-order shuffled")
    parser.add_argument("--tile-index", type=Path, help="Tile index CSV for per-tile metrics")
    parser.add_argument(
        "--heatmap-metric",
        choices=TILE_METRICS,
        default=DEFAULT_HEATMAP_METRIC,
    )
    parser.add_argument(
        "--dataset",
        choices=sorted(SAMPLE_DATASETS),
        help="Known study area; supplies the default output directory and map centre",
    )
    parser.add_argument("--output-dir", type=Path, help="Directory for the JSON/GeoJSON bundle")
    parser.add_argument("--map-html", type=Path, help="Optional output HTML map path")
    parser.add_argument(
        "--overlay",
        action="store_true",
        help="Classify TP/FP/FN features (implied by --map-html)",
    )
    return parser


def _log_metrics(metrics: ConfusionMetrics) -> None:
    display = metrics.as_display()
    logging.info(
        "TP %sm  FP %sm  FN %sm", display["TP"], display["FP"], display["FN"]
    )
    logging.info(
        "Precision %s  Recall %s  F1 %s  IoU %s",
        display["precision"],
        display["recall"],
        display["f1Score"],
        display["iou"],
    )
    if metrics.approximate:
        logging.warning(
            "Results are approximate: limited to %d comparisons", metrics.comparisons
        )


def _load_ground_truth(args: argparse.Namespace) -> Any:
    if args.ground_truth is not None:
        return read_geojson(args.ground_truth)
    min_lat, max_lat, min_lon, max_lon = args.overpass_bbox
    logging.info("Fetching OSM ground truth for bbox %s", args.overpass_bbox)
    return fetch_overpass_ground_truth((min_lat, max_lat, min_lon, max_lon))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m footpath_audit``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    try:
        detected_payload = read_geojson(args.detected)
        polygons: List[Feature] = []
        if args.detected_polygons is not None:
            polygons = normalize_features(read_geojson(args.detected_polygons))
        truth_payload = _load_ground_truth(args)
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Failed to load input: %s", exc)
        return 1
    except OverpassError as exc:
        logging.error("%s", exc)
        return 1

    detected = normalize_features(detected_payload)
    ground_truth = normalize_features(truth_payload)

    try:
        metrics = compute_confusion_matrix(
            detected,
            ground_truth,
            buffer_distance_m=args.buffer_m,
            max_comparisons=args.max_comparisons,
            pair_order=args.pair_order,
            seed=args.seed,
        )
    except EmptyInputError as exc:
        logging.error("%s", exc)
        return 1
    except ValueError as exc:
        logging.error("Invalid analysis settings: %s", exc)
        return 1
    _log_metrics(metrics)

    overlay: Optional[OverlayClassification] = None
    if args.overlay or args.map_html is not None:
        overlay = classify_overlay(detected, ground_truth, buffer_distance_m=args.buffer_m)

    tile_rows = None
    if args.tile_index is not None:
        try:
            tiles = read_tile_index(args.tile_index)
        except (TileIndexFormatError, FileNotFoundError) as exc:
            logging.error("Failed to load tile index '%s': %s", args.tile_index, exc)
            return 1
        tile_rows = compute_tile_metrics(
            detected,
            ground_truth,
            tiles,
            detected_polygons=polygons,
            buffer_distance_m=args.buffer_m,
            max_comparisons=args.max_comparisons,
            pair_order=args.pair_order,
            seed=args.seed,
        )

    dataset = SAMPLE_DATASETS.get(args.dataset) if args.dataset else None
    output_dir = args.output_dir
    if output_dir is None and dataset is not None:
        output_dir = Path(dataset["output_path"])

    if output_dir is not None:
        summary = global_summary(
            metrics,
            detected=detected,
            ground_truth=ground_truth,
            detected_polygons=polygons,
            overlay=overlay,
        )
        write_analysis_outputs(
            output_dir,
            summary,
            tile_rows=tile_rows,
            overlay=overlay,
            detected_polygons=polygons,
            ground_truth=ground_truth,
        )

    if args.map_html is not None and overlay is not None:
        create_confusion_map(
            overlay,
            metrics=metrics,
            detected_polygons=polygons,
            ground_truth=ground_truth,
            tile_rows=tile_rows,
            heatmap_metric=args.heatmap_metric,
            center=dataset["center"] if dataset is not None else None,
            output_html_path=args.map_html,
        )
        logging.info("Map written to %s", args.map_html)
    return 0


__all__ = ["main"]
