"""Interactive maps of confusion categories and per-tile accuracy."""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from .analysis.metrics import ConfusionMetrics
from .analysis.overlay import OverlayClassification
from .analysis.tiles import heatmap_color, metric_range, tile_polygon, tiles_with_data
from .config import DEFAULT_HEATMAP_METRIC, TILE_ZOOM
from .geometry import Feature, feature_collection

LatLon = Tuple[float, float]
PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)

_TP_COLOR = "#27ae60"
_FP_COLOR = "#e67e22"
_FN_COLOR = "#e74c3c"
_POLYGON_COLOR = "#3498db"
_GROUND_TRUTH_COLOR = "#95a5a6"

METRIC_LABELS = {
    "f1_score": "F1 Score",
    "precision": "Precision",
    "recall": "Recall",
    "iou": "IoU",
    "tp_length_m": "True Positive Length (m)",
    "fp_length_m": "False Positive Length (m)",
    "fn_length_m": "False Negative Length (m)",
}


def format_metric_label(metric: str) -> str:
    return METRIC_LABELS.get(metric, metric)


def render_results_html(metrics: ConfusionMetrics) -> str:
    """Return the results panel markup for a confusion-matrix report."""

    display = metrics.as_display()
    warning = ""
    if metrics.approximate:
        warning = (
            '<div style="background:#fff3cd;padding:10px;margin:10px 0;'
            'border-left:4px solid #ffc107;">'
            "<strong>Approximate Results</strong><br>"
            f"<small>Analysis limited to {display['comparisons']} comparisons.</small>"
            "</div>"
        )
    rows = [
        ("True Positives (TP)", f"{display['TP']}m", "ML detected paths matching OSM ground truth"),
        ("False Positives (FP)", f"{display['FP']}m", "ML detected paths not in OSM"),
        ("False Negatives (FN)", f"{display['FN']}m", "OSM paths not detected by ML"),
        ("Precision", _percent(display["precision"]), "TP / (TP + FP)"),
        ("Recall", _percent(display["recall"]), "TP / (TP + FN)"),
        ("F1 Score", _percent(display["f1Score"]), "Harmonic mean of precision and recall"),
        ("IoU", _percent(display["iou"]), "Intersection over Union"),
    ]
    body = "".join(
        f'<div style="padding:4px 0;"><strong>{label}:</strong> {value}<br>'
        f"<small>{hint}</small></div>"
        for label, value, hint in rows
    )
    return (
        '<div id="results-panel" style="position:fixed;top:10px;left:60px;z-index:9999;'
        "max-width:350px;max-height:400px;overflow-y:auto;background:white;padding:10px;"
        'border-radius:5px;box-shadow:0 2px 8px rgba(0,0,0,0.3);">'
        '<h4 style="margin-top:0;">Confusion Matrix Analysis</h4>'
        f"{warning}"
        f"<div><strong>Buffer Distance:</strong> {display['bufferDistance']}m<br>"
        f"<small>Comparisons: {display['comparisons']}</small></div>"
        f"{body}<hr>"
        f'<div style="font-size:0.9em;color:#666;">'
        f"<strong>Total ML Length:</strong> {display['mlLength']}m<br>"
        f"<strong>Total OSM Length:</strong> {display['osmLength']}m</div>"
        "</div>"
    )


def render_tile_popup(row: Mapping[str, Any]) -> str:
    """Return the per-tile detail markup shown when a heatmap cell is clicked."""

    def _fmt(key: str, digits: int = 3) -> str:
        value = row.get(key)
        return "n/a" if value is None else f"{float(value):.{digits}f}"

    return (
        f"<h4>Tile {html.escape(str(row.get('tile_id')))}</h4>"
        f"<b>Position:</b> ({row.get('xtile')}, {row.get('ytile')})<br>"
        f"<b>Center:</b> ({_fmt('lat', 6)}, {_fmt('lon', 6)})<br>"
        f"<b>F1 Score:</b> {_fmt('f1_score')}<br>"
        f"<b>Precision:</b> {_fmt('precision')}<br>"
        f"<b>Recall:</b> {_fmt('recall')}<br>"
        f"<b>IoU:</b> {_fmt('iou')}<br>"
        f"<b>ML Network:</b> {row.get('ml_network_count', 0)}<br>"
        f"<b>ML Polygons:</b> {row.get('ml_polygon_count', 0)}<br>"
        f"<b>OSM Paths:</b> {row.get('osm_count', 0)}<br>"
        f"<b>TP:</b> {_fmt('tp_length_m', 1)}m "
        f"<b>FP:</b> {_fmt('fp_length_m', 1)}m "
        f"<b>FN:</b> {_fmt('fn_length_m', 1)}m"
    )


def add_confusion_layers(
    folium_map: folium.Map,
    overlay: OverlayClassification,
    *,
    detected_polygons: Sequence[Feature] = (),
    ground_truth: Sequence[Feature] = (),
) -> List[folium.FeatureGroup]:
    """Add one toggleable layer per confusion category; empty categories are skipped."""

    specs = [
        ("True Positives", overlay.true_positives, {"color": _TP_COLOR, "weight": 3, "opacity": 0.8}),
        ("False Positives", overlay.false_positives, {"color": _FP_COLOR, "weight": 3, "opacity": 0.8}),
        ("False Negatives", overlay.false_negatives, {"color": _FN_COLOR, "weight": 3, "opacity": 0.8}),
        (
            "ML Polygons",
            detected_polygons,
            {"color": _POLYGON_COLOR, "weight": 1, "fillColor": _POLYGON_COLOR, "fillOpacity": 0.1},
        ),
        ("OSM Ground Truth", ground_truth, {"color": _GROUND_TRUTH_COLOR, "weight": 2, "opacity": 0.5}),
    ]
    groups: List[folium.FeatureGroup] = []
    for name, features, style in specs:
        if not features:
            continue
        group = folium.FeatureGroup(name=name, show=True)
        folium.GeoJson(
            feature_collection(features),
            style_function=_constant_style(style),
            tooltip=name,
        ).add_to(group)
        group.add_to(folium_map)
        groups.append(group)
    return groups


def add_tile_heatmap(
    folium_map: folium.Map,
    tile_rows: Iterable[Mapping[str, Any]],
    *,
    metric: str = DEFAULT_HEATMAP_METRIC,
    show: bool = True,
) -> Optional[folium.FeatureGroup]:
    """Colour every tile with data by ``metric`` on a red-yellow-green scale."""

    rows = tiles_with_data(tile_rows)
    if not rows:
        return None
    bounds = metric_range(rows, metric)
    vmin, vmax = bounds if bounds is not None else (0.0, 1.0)
    group = folium.FeatureGroup(name=f"Tile heatmap ({format_metric_label(metric)})", show=show)
    for row in rows:
        polygon = tile_polygon(int(row["xtile"]), int(row["ytile"]), int(row.get("zoom", TILE_ZOOM)))
        color = heatmap_color(row.get(metric), vmin, vmax)
        folium.GeoJson(
            {"type": "Feature", "properties": {}, "geometry": polygon.__geo_interface__},
            style_function=_constant_style(
                {"fillColor": color, "fillOpacity": 0.6, "color": "#333", "weight": 1, "opacity": 0.8}
            ),
            tooltip=f"Tile {row.get('tile_id')}",
            popup=folium.Popup(render_tile_popup(row), max_width=300),
        ).add_to(group)
    group.add_to(folium_map)
    LOGGER.info(
        "Heatmap of %s over %d tiles (range %.3f to %.3f)", metric, len(rows), vmin, vmax
    )
    return group


def create_confusion_map(
    overlay: OverlayClassification,
    *,
    metrics: Optional[ConfusionMetrics] = None,
    detected_polygons: Sequence[Feature] = (),
    ground_truth: Sequence[Feature] = (),
    tile_rows: Optional[Sequence[Mapping[str, Any]]] = None,
    heatmap_metric: str = DEFAULT_HEATMAP_METRIC,
    center: Optional[LatLon] = None,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create an interactive map of the confusion categories.

    Args:
        overlay: Categorised features from :func:`classify_overlay`.
        metrics: Optional report rendered as a fixed results panel.
        detected_polygons: Optional detected area polygons to show.
        ground_truth: Optional raw ground-truth features to show.
        tile_rows: Optional per-tile rows; adds a heatmap layer.
        heatmap_metric: Per-tile metric used for the heatmap colours.
        center: Map centre as ``(lat, lon)``; derived from the data if omitted.
        output_html_path: Optional path to persist the map as HTML.

    Returns:
        A :class:`folium.Map` with a layer control.
    """

    all_features = [
        *overlay.true_positives,
        *overlay.false_positives,
        *overlay.false_negatives,
        *detected_polygons,
        *ground_truth,
    ]
    bounds = _feature_bounds(all_features)
    if center is None:
        center = _bounds_center(bounds) if bounds is not None else (0.0, 0.0)

    folium_map = folium.Map(location=center, zoom_start=17, control_scale=True)
    add_confusion_layers(
        folium_map,
        overlay,
        detected_polygons=detected_polygons,
        ground_truth=ground_truth,
    )
    if tile_rows is not None:
        add_tile_heatmap(folium_map, tile_rows, metric=heatmap_metric, show=False)
    if metrics is not None:
        folium_map.get_root().html.add_child(folium.Element(render_results_html(metrics)))
    folium.LayerControl(collapsed=False).add_to(folium_map)
    if bounds is not None:
        folium_map.fit_bounds(bounds, padding=(50, 50))

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


def _constant_style(style: Dict[str, Any]):
    return lambda _feature: dict(style)


def _percent(value: str) -> str:
    return value if value == "n/a" else f"{value}%"


def _feature_bounds(features: Sequence[Feature]) -> Optional[List[LatLon]]:
    """Return ``[[south, west], [north, east]]`` covering ``features``."""

    boxes = [f.geometry.bounds for f in features if not f.geometry.is_empty]
    if not boxes:
        return None
    west = min(b[0] for b in boxes)
    south = min(b[1] for b in boxes)
    east = max(b[2] for b in boxes)
    north = max(b[3] for b in boxes)
    return [(south, west), (north, east)]


def _bounds_center(bounds: Sequence[LatLon]) -> LatLon:
    (south, west), (north, east) = bounds
    return (south + north) / 2.0, (west + east) / 2.0


__all__ = [
    "METRIC_LABELS",
    "add_confusion_layers",
    "add_tile_heatmap",
    "create_confusion_map",
    "format_metric_label",
    "render_results_html",
    "render_tile_popup",
]
