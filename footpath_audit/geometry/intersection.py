"""Pairwise corridor overlap under a bounded comparison budget.

Every pair ``(a, b)`` of the two corridor sets is a candidate comparison. At
most ``max_comparisons`` of them are evaluated; when the cross product is
larger the result is flagged ``approximate``.

With the default ``"row-major"`` order the evaluated pairs are the first ones
of the outer loop over ``a``, so a truncated run systematically over-weights
features that appear early in ``a``. It is not an unbiased sample. The
``"shuffled"`` order draws the evaluated pairs uniformly from the whole cross
product instead, reproducibly for a given ``seed``.
"""

from __future__ import annotations

from itertools import islice
import logging
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from ..config import MAX_COMPARISONS, PAIR_ORDER, PROGRESS_LOG_INTERVAL
from ..errors import SkippableFeatureError
from .models import BufferedFeature, IntersectionResult

LOGGER = logging.getLogger(__name__)

PAIR_ORDERS = ("row-major", "shuffled")


def total_area_m2(buffered: Sequence[BufferedFeature]) -> float:
    """Sum (not union) the corridor areas; overlaps within a set count twice."""

    total = 0.0
    for item in buffered:
        try:
            total += item.area_m2
        except (GEOSException, ValueError) as exc:
            LOGGER.warning("Error calculating area: %s", exc)
    return total


def pair_overlap(a: BufferedFeature, b: BufferedFeature) -> Optional[BaseGeometry]:
    """Return the areal overlap of two corridors, or None when they do not overlap.

    Raises:
        SkippableFeatureError: If the polygon intersection fails.
    """

    if not _envelopes_overlap(a, b):
        return None
    try:
        overlap = a.polygon.intersection(b.polygon)
    except (GEOSException, ValueError) as exc:
        raise SkippableFeatureError("corridor intersection failed") from exc
    # Corridors touching along an edge intersect with zero area.
    if overlap is None or overlap.is_empty or overlap.area <= 0.0:
        return None
    return overlap


def pair_overlap_m2(a: BufferedFeature, b: BufferedFeature) -> float:
    """Return the overlap area of two corridors (0.0 when disjoint)."""

    overlap = pair_overlap(a, b)
    return float(overlap.area) if overlap is not None else 0.0


def iter_pairs(
    count_a: int,
    count_b: int,
    *,
    limit: int,
    pair_order: str = "row-major",
    seed: Optional[int] = None,
) -> Iterator[Tuple[int, int]]:
    """Yield at most ``limit`` index pairs of the ``count_a`` x ``count_b`` grid."""

    total = count_a * count_b
    limit = min(limit, total)
    if limit <= 0:
        return
    if pair_order == "row-major":
        grid = ((i, j) for i in range(count_a) for j in range(count_b))
        yield from islice(grid, limit)
    elif pair_order == "shuffled":
        rng = np.random.default_rng(seed)
        for flat in rng.choice(total, size=limit, replace=False):
            i, j = divmod(int(flat), count_b)
            yield i, j
    else:
        raise ValueError(f"Unknown pair order {pair_order!r}; expected one of {PAIR_ORDERS}")


def intersect_buffered(
    buffered_a: Sequence[BufferedFeature],
    buffered_b: Sequence[BufferedFeature],
    *,
    max_comparisons: int = MAX_COMPARISONS,
    pair_order: str = PAIR_ORDER,
    seed: Optional[int] = None,
    progress_interval: int = PROGRESS_LOG_INTERVAL,
) -> IntersectionResult:
    """Measure the summed pairwise overlap between two corridor sets.

    Args:
        buffered_a: Corridors of the detected features (outer loop).
        buffered_b: Corridors of the ground-truth features (inner loop).
        max_comparisons: Upper bound on attempted pair intersections.
        pair_order: ``"row-major"`` or ``"shuffled"``.
        seed: Random seed used by the ``"shuffled"`` order.
        progress_interval: Log progress every N comparisons (0 disables).

    Returns:
        :class:`IntersectionResult` with summed overlap, per-set areas and
        the comparison bookkeeping.

    Raises:
        ValueError: If ``max_comparisons`` is negative or ``pair_order`` is
            unknown.
    """

    if max_comparisons < 0:
        raise ValueError("max_comparisons must be zero or greater")
    if pair_order not in PAIR_ORDERS:
        raise ValueError(f"Unknown pair order {pair_order!r}; expected one of {PAIR_ORDERS}")

    total_a = total_area_m2(buffered_a)
    total_b = total_area_m2(buffered_b)
    LOGGER.info("Total areas - ML: %.2fm², OSM: %.2fm²", total_a, total_b)

    total_pairs = len(buffered_a) * len(buffered_b)
    approximate = total_pairs > max_comparisons

    intersection_area = 0.0
    comparisons = 0
    failed = 0
    empty = 0
    for i, j in iter_pairs(
        len(buffered_a),
        len(buffered_b),
        limit=max_comparisons,
        pair_order=pair_order,
        seed=seed,
    ):
        comparisons += 1
        if progress_interval > 0 and comparisons % progress_interval == 0:
            LOGGER.info("Processing intersection %d...", comparisons)
        try:
            area = pair_overlap_m2(buffered_a[i], buffered_b[j])
        except SkippableFeatureError as exc:
            failed += 1
            LOGGER.debug("Pair (%d, %d) skipped: %s", i, j, exc)
            continue
        if area > 0.0:
            intersection_area += area
        else:
            empty += 1

    if approximate:
        LOGGER.warning(
            "Reached comparison limit (%d of %d pairs). Results may be approximate.",
            max_comparisons,
            total_pairs,
        )
    LOGGER.info(
        "Completed %d comparisons, skipped %d failed intersections",
        comparisons,
        failed,
    )
    LOGGER.info("Intersection area: %.2fm²", intersection_area)

    return IntersectionResult(
        intersection_area_m2=intersection_area,
        total_area_a_m2=total_a,
        total_area_b_m2=total_b,
        comparisons=comparisons,
        approximate=approximate,
        total_pairs=total_pairs,
        failed_comparisons=failed,
        empty_comparisons=empty,
    )


def _envelopes_overlap(a: BufferedFeature, b: BufferedFeature) -> bool:
    a_minx, a_miny, a_maxx, a_maxy = a.polygon.bounds
    b_minx, b_miny, b_maxx, b_maxy = b.polygon.bounds
    return not (a_maxx < b_minx or b_maxx < a_minx or a_maxy < b_miny or b_maxy < a_miny)


__all__ = [
    "PAIR_ORDERS",
    "intersect_buffered",
    "iter_pairs",
    "pair_overlap",
    "pair_overlap_m2",
    "total_area_m2",
]
