"""Tests for geodesic length and area accumulation."""

from __future__ import annotations

import logging

import pytest
from shapely.geometry import LineString, MultiLineString

from footpath_audit.geometry import Feature, feature_length_m, geodesic_area_m2, total_length_m

from conftest import make_square, north_line, offset


def test_line_length_matches_geodesic_offset() -> None:
    assert feature_length_m(north_line(length_m=100.0)) == pytest.approx(100.0, rel=1e-4)


def test_multilinestring_parts_are_summed() -> None:
    parts = MultiLineString(
        [
            [offset(0, 0), offset(0, 40)],
            [offset(10, 0), offset(10, 60)],
        ]
    )

    assert feature_length_m(Feature(geometry=parts)) == pytest.approx(100.0, rel=1e-4)


def test_polygons_have_no_length() -> None:
    assert feature_length_m(make_square(0, 0, 50)) == 0.0


def test_total_length_is_zero_for_empty_input() -> None:
    assert total_length_m([]) == 0.0


def test_total_length_skips_unmeasurable_features(monkeypatch, caplog) -> None:
    from footpath_audit.geometry import length as length_module

    good = north_line(length_m=30.0, id="good")
    bad = Feature(geometry=LineString([(0, 0), (0, 1)]), properties={"id": "bad"})
    original = length_module.feature_length_m

    def flaky(feature):
        if feature is bad:
            raise ValueError("corrupt coordinates")
        return original(feature)

    monkeypatch.setattr(length_module, "feature_length_m", flaky)
    with caplog.at_level(logging.WARNING):
        total = length_module.total_length_m([good, bad])

    assert total == pytest.approx(30.0, rel=1e-4)
    assert "LineString#bad" in caplog.text


def test_geodesic_area_of_square() -> None:
    assert geodesic_area_m2(make_square(0, 0, 100)) == pytest.approx(10_000.0, rel=1e-3)
    assert geodesic_area_m2(north_line()) == 0.0


def test_total_equals_sum_of_feature_lengths() -> None:
    features = [north_line(0.0, length_m=25.0), north_line(10.0, length_m=75.0)]

    assert total_length_m(features) == pytest.approx(sum(feature_length_m(f) for f in features))
