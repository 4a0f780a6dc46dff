"""Tests for the command line entry point."""

from __future__ import annotations

import json
from pathlib import Path

from footpath_audit import io as audit_io
from footpath_audit import main as cli

from conftest import collection, line_geojson, offset, tile_indices


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _inputs(tmp_path: Path):
    detected = _write(
        tmp_path / "network.geojson",
        collection(line_geojson([(0, 0), (0, 100)], feature_id="ml-1")),
    )
    truth = _write(
        tmp_path / "osm.geojson",
        collection(line_geojson([(1, 0), (1, 100)], feature_id="way/1")),
    )
    return detected, truth


def test_cli_writes_bundle_and_map(tmp_path: Path) -> None:
    detected, truth = _inputs(tmp_path)
    out_dir = tmp_path / "out"
    map_path = tmp_path / "map.html"

    exit_code = cli.main(
        [
            "--detected", str(detected),
            "--ground-truth", str(truth),
            "--buffer-m", "5",
            "--output-dir", str(out_dir),
            "--map-html", str(map_path),
        ]
    )

    assert exit_code == 0
    assert map_path.exists()
    summary = json.loads((out_dir / audit_io.GLOBAL_METRICS_FILE).read_text())
    assert summary["recall"] > 0.99
    assert summary["tp_count"] == 1
    assert (out_dir / audit_io.TRUE_POSITIVES_FILE).exists()


def test_cli_returns_error_for_empty_input(tmp_path: Path, caplog) -> None:
    _, truth = _inputs(tmp_path)
    empty = _write(tmp_path / "empty.geojson", collection())

    exit_code = cli.main(["--detected", str(empty), "--ground-truth", str(truth)])

    assert exit_code == 1
    assert "No valid LineString features" in caplog.text


def test_cli_returns_error_for_missing_file(tmp_path: Path) -> None:
    _, truth = _inputs(tmp_path)

    exit_code = cli.main(
        ["--detected", str(tmp_path / "missing.geojson"), "--ground-truth", str(truth)]
    )

    assert exit_code == 1


def test_cli_fetches_overpass_ground_truth(tmp_path: Path, monkeypatch) -> None:
    detected, truth = _inputs(tmp_path)
    seen = {}

    def fake_fetch(bbox):
        seen["bbox"] = bbox
        return json.loads(truth.read_text())

    monkeypatch.setattr(cli, "fetch_overpass_ground_truth", fake_fetch)

    exit_code = cli.main(
        [
            "--detected", str(detected),
            "--overpass-bbox", "42.35", "42.36", "-71.07", "-71.06",
        ]
    )

    assert exit_code == 0
    assert seen["bbox"] == (42.35, 42.36, -71.07, -71.06)


def test_cli_per_tile_metrics(tmp_path: Path) -> None:
    detected, truth = _inputs(tmp_path)
    index = tmp_path / "tiles.csv"
    x, y = tile_indices(*offset(0, 50), 17)
    index.write_text(f"idd,zoom,xtile,ytile\n1,17,{x},{y}\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    exit_code = cli.main(
        [
            "--detected", str(detected),
            "--ground-truth", str(truth),
            "--tile-index", str(index),
            "--output-dir", str(out_dir),
        ]
    )

    assert exit_code == 0
    assert (out_dir / audit_io.TILE_METRICS_CSV).exists()


def test_cli_rejects_bad_tile_index(tmp_path: Path) -> None:
    detected, truth = _inputs(tmp_path)
    index = tmp_path / "tiles.csv"
    index.write_text("idd,zoom\n1,17\n", encoding="utf-8")

    exit_code = cli.main(
        ["--detected", str(detected), "--ground-truth", str(truth), "--tile-index", str(index)]
    )

    assert exit_code == 1


def test_cli_dataset_supplies_default_output_dir(tmp_path: Path, monkeypatch) -> None:
    detected, truth = _inputs(tmp_path)
    monkeypatch.chdir(tmp_path)

    exit_code = cli.main(
        ["--detected", str(detected), "--ground-truth", str(truth), "--dataset", "times_square"]
    )

    assert exit_code == 0
    assert (tmp_path / "times_square_output" / audit_io.GLOBAL_METRICS_FILE).exists()


def test_cli_passes_pair_order_to_tile_metrics(tmp_path: Path, monkeypatch) -> None:
    detected, truth = _inputs(tmp_path)
    x, y = tile_indices(*offset(0, 50), 17)
    index = tmp_path / "tiles.csv"
    index.write_text(f"idd,zoom,xtile,ytile\n1,17,{x},{y}\n", encoding="utf-8")
    seen = {}

    def fake_tile_metrics(*_args, **kwargs):
        seen.update(kwargs)
        return []

    monkeypatch.setattr(cli, "compute_tile_metrics", fake_tile_metrics)

    exit_code = cli.main(
        [
            "--detected", str(detected),
            "--ground-truth", str(truth),
            "--tile-index", str(index),
            "--pair-order", "shuffled",
            "--seed", "5",
        ]
    )

    assert exit_code == 0
    assert seen["pair_order"] == "shuffled"
    assert seen["seed"] == 5
