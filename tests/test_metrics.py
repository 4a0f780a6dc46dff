"""Tests for the length-based confusion matrix."""

from __future__ import annotations

import pytest
from shapely.geometry import Point

from footpath_audit.analysis import (
    ConfusionMetrics,
    compute_confusion_matrix,
    confusion_from_overlap,
    f1_from,
    safe_ratio,
)
from footpath_audit.errors import EmptyInputError
from footpath_audit.geometry import Feature, IntersectionResult

from conftest import collection, east_line, line_geojson, north_line, offset


def _overlap(area: float, *, approximate: bool = False, comparisons: int = 1) -> IntersectionResult:
    return IntersectionResult(
        intersection_area_m2=area,
        total_area_a_m2=0.0,
        total_area_b_m2=0.0,
        comparisons=comparisons,
        approximate=approximate,
    )


def test_parallel_lines_score_as_full_match(parallel_pair) -> None:
    detected, ground_truth = parallel_pair

    metrics = compute_confusion_matrix(detected, ground_truth, buffer_distance_m=5.0)

    assert metrics.precision == pytest.approx(1.0, abs=1e-6)
    assert metrics.recall == pytest.approx(1.0, abs=1e-6)
    assert metrics.f1_score == pytest.approx(1.0, abs=1e-6)
    assert metrics.iou == pytest.approx(1.0, abs=1e-6)
    assert metrics.matched_length_m > metrics.tp_length_m
    assert metrics.approximate is False
    assert metrics.comparisons == 1


def test_disjoint_lines_have_no_true_positives() -> None:
    metrics = compute_confusion_matrix([north_line(0.0)], [north_line(1000.0)])

    assert metrics.tp_length_m == 0.0
    assert metrics.fp_length_m == pytest.approx(100.0, rel=1e-4)
    assert metrics.fn_length_m == pytest.approx(100.0, rel=1e-4)
    assert metrics.precision == 0.0
    assert metrics.recall == 0.0
    assert metrics.f1_score == 0.0
    assert metrics.iou == 0.0


def test_crossing_lines_match_overlap_over_buffer() -> None:
    metrics = compute_confusion_matrix([east_line(50.0)], [north_line(50.0)], buffer_distance_m=5.0)

    # A 10 m x 10 m crossing square over a 5 m buffer.
    assert metrics.tp_length_m == pytest.approx(20.0, rel=0.01)
    assert metrics.precision == pytest.approx(0.2, rel=0.01)


def test_lengths_always_partition_the_inputs(crossing_scene) -> None:
    detected, ground_truth = crossing_scene

    metrics = compute_confusion_matrix(detected, ground_truth)

    assert metrics.tp_length_m + metrics.fp_length_m == pytest.approx(metrics.detected_length_m)
    assert metrics.tp_length_m + metrics.fn_length_m == pytest.approx(metrics.ground_truth_length_m)
    assert metrics.tp_length_m >= 0.0
    assert metrics.fp_length_m >= 0.0
    assert metrics.fn_length_m >= 0.0
    for ratio in (metrics.precision, metrics.recall, metrics.f1_score, metrics.iou):
        assert 0.0 <= ratio <= 1.0


def test_geojson_inputs_are_accepted() -> None:
    detected = collection(line_geojson([(0, 0), (0, 100)]))
    ground_truth = collection(line_geojson([(1, 0), (1, 100)]))

    metrics = compute_confusion_matrix(detected, ground_truth)

    assert metrics.detected_count == 1
    assert metrics.ground_truth_count == 1
    assert metrics.recall == pytest.approx(1.0, abs=1e-6)


def test_repeated_runs_are_identical(crossing_scene) -> None:
    detected, ground_truth = crossing_scene

    assert compute_confusion_matrix(detected, ground_truth) == compute_confusion_matrix(
        detected, ground_truth
    )


def test_empty_input_raises_before_geometric_work(monkeypatch) -> None:
    from footpath_audit.analysis import metrics as metrics_module

    def fail(*_args, **_kwargs):
        raise AssertionError("buffering should not run")

    monkeypatch.setattr(metrics_module, "buffer_features", fail)

    with pytest.raises(EmptyInputError):
        compute_confusion_matrix(collection(), [north_line()])
    with pytest.raises(EmptyInputError):
        compute_confusion_matrix([north_line()], {"type": "FeatureCollection", "features": []})


def test_non_positive_buffer_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_confusion_matrix([north_line()], [north_line()], buffer_distance_m=0.0)


def test_budget_exhaustion_is_reported() -> None:
    detected = [north_line(i * 30.0, length_m=20.0) for i in range(40)]
    ground_truth = [east_line(i * 25.0, length_m=10.0) for i in range(30)]

    metrics = compute_confusion_matrix(detected, ground_truth, max_comparisons=1000)

    assert metrics.approximate is True
    assert metrics.comparisons == 1000
    assert metrics.as_display()["approximate"] is True


def test_confusion_from_overlap_formula() -> None:
    metrics = confusion_from_overlap(100.0, 200.0, _overlap(250.0), 5.0)

    assert metrics.tp_length_m == pytest.approx(50.0)
    assert metrics.fp_length_m == pytest.approx(50.0)
    assert metrics.fn_length_m == pytest.approx(150.0)
    display = metrics.as_display()
    assert display["TP"] == "50.00"
    assert display["precision"] == "50.00"
    assert display["recall"] == "25.00"
    assert display["f1Score"] == "33.33"
    assert display["iou"] == "20.00"
    assert display["bufferDistance"] == 5.0


def test_overshooting_overlap_is_clamped() -> None:
    metrics = confusion_from_overlap(100.0, 120.0, _overlap(1000.0), 5.0)

    assert metrics.matched_length_m == pytest.approx(200.0)
    assert metrics.tp_length_m == pytest.approx(100.0)
    assert metrics.fp_length_m == 0.0
    assert metrics.fn_length_m == pytest.approx(20.0)


def test_zero_denominators_are_undefined() -> None:
    metrics = confusion_from_overlap(0.0, 80.0, _overlap(0.0), 5.0)

    assert metrics.precision is None
    assert metrics.recall == 0.0
    assert metrics.f1_score is None
    assert metrics.iou == 0.0
    assert metrics.as_display()["precision"] == "n/a"


def test_ratio_helpers() -> None:
    assert safe_ratio(1.0, 0.0) is None
    assert safe_ratio(1.0, 4.0) == 0.25
    assert f1_from(None, 0.5) is None
    assert f1_from(0.0, 0.0) == 0.0
    assert f1_from(1.0, 1.0) == 1.0


def test_to_dict_keeps_raw_values() -> None:
    metrics = confusion_from_overlap(100.0, 100.0, _overlap(250.0, approximate=True), 5.0)

    payload = metrics.to_dict()

    assert isinstance(metrics, ConfusionMetrics)
    assert payload["tp_length_m"] == pytest.approx(50.0)
    assert payload["approximate"] is True
    assert payload["precision"] == pytest.approx(0.5)


def test_point_features_do_not_count_as_matches() -> None:
    stray_point = Feature(geometry=Point(offset(0.0, 50.0)))

    metrics = compute_confusion_matrix([north_line(1000.0), stray_point], [north_line(0.0)])

    assert metrics.detected_count == 1
    assert metrics.tp_length_m == 0.0
