"""Tests for TP/FP/FN feature classification."""

from __future__ import annotations

from footpath_audit.analysis import classify_overlay

from conftest import BASE_LAT, BASE_LON, east_line, north_line


def test_crossing_scene_is_partitioned(crossing_scene) -> None:
    detected, ground_truth = crossing_scene

    overlay = classify_overlay(detected, ground_truth, buffer_distance_m=5.0)

    assert overlay.counts() == {"tp_count": 1, "fp_count": 1, "fn_count": 1}
    assert overlay.false_positives[0].properties["id"] == "ml-stray"
    assert overlay.false_negatives[0].properties["id"] == "osm-missed"
    assert overlay.false_positives[0] is detected[1]


def test_true_positive_geometry_is_intersection_in_lonlat(crossing_scene) -> None:
    detected, ground_truth = crossing_scene

    overlay = classify_overlay(detected, ground_truth, buffer_distance_m=5.0)

    tp = overlay.true_positives[0]
    assert tp.geometry_type == "Polygon"
    assert tp.properties["category"] == "true_positive"
    lon, lat = tp.geometry.centroid.coords[0]
    assert abs(lon - BASE_LON) < 0.01
    assert abs(lat - BASE_LAT) < 0.01


def test_each_overlapping_pair_contributes_a_true_positive() -> None:
    detected = [east_line(50.0)]
    ground_truth = [north_line(20.0), north_line(80.0)]

    overlay = classify_overlay(detected, ground_truth)

    assert len(overlay.true_positives) == 2
    assert overlay.false_positives == []
    assert overlay.false_negatives == []


def test_empty_inputs_give_empty_categories() -> None:
    overlay = classify_overlay([], [])

    assert overlay.counts() == {"tp_count": 0, "fp_count": 0, "fn_count": 0}


def test_geojson_export_has_three_collections(crossing_scene) -> None:
    detected, ground_truth = crossing_scene

    collections = classify_overlay(detected, ground_truth).to_geojson()

    assert set(collections) == {"true_positives", "false_positives", "false_negatives"}
    assert all(c["type"] == "FeatureCollection" for c in collections.values())
    assert len(collections["true_positives"]["features"]) == 1
