"""Tests for bounding box computation, expansion and validation."""

from __future__ import annotations

import pytest

from cadastre_report.geo_engine.bbox import (
    compute_bbox,
    expand_bbox,
    validate_bbox,
)


# ──────────────────────────────────────────────────────────────
# FIXTURES
# ──────────────────────────────────────────────────────────────

# Two small polygons in Bordeaux, the second one with a hole
MULTI_COORDS = [
    [[
        [-0.5800, 44.8400],
        [-0.5790, 44.8400],
        [-0.5790, 44.8410],
        [-0.5800, 44.8410],
        [-0.5800, 44.8400],
    ]],
    [
        [
            [-0.5780, 44.8395],
            [-0.5770, 44.8395],
            [-0.5770, 44.8405],
            [-0.5780, 44.8405],
            [-0.5780, 44.8395],
        ],
        [
            [-0.5778, 44.8397],
            [-0.5772, 44.8397],
            [-0.5772, 44.8403],
            [-0.5778, 44.8397],
        ],
    ],
]


# ──────────────────────────────────────────────────────────────
# COMPUTE
# ──────────────────────────────────────────────────────────────

class TestComputeBbox:
    def test_extremes_of_all_polygons(self):
        assert compute_bbox(MULTI_COORDS) == (-0.5800, 44.8395, -0.5770, 44.8410)

    def test_contains_every_position(self):
        min_lon, min_lat, max_lon, max_lat = compute_bbox(MULTI_COORDS)
        for polygon in MULTI_COORDS:
            for ring in polygon:
                for lon, lat in ring:
                    assert min_lon <= lon <= max_lon
                    assert min_lat <= lat <= max_lat

    def test_ordered(self):
        min_lon, min_lat, max_lon, max_lat = compute_bbox(MULTI_COORDS)
        assert min_lon <= max_lon
        assert min_lat <= max_lat

    def test_single_point(self):
        assert compute_bbox([[[[1.5, 2.5]]]]) == (1.5, 2.5, 1.5, 2.5)

    def test_extra_position_values_ignored(self):
        bbox = compute_bbox([[[[1.0, 2.0, 35.0], [3.0, 4.0, 40.0]]]])
        assert bbox == (1.0, 2.0, 3.0, 4.0)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            compute_bbox([])

    def test_empty_rings_raise(self):
        with pytest.raises(ValueError):
            compute_bbox([[[]], []])


# ──────────────────────────────────────────────────────────────
# EXPAND
# ──────────────────────────────────────────────────────────────

class TestExpandBbox:
    def test_zero_margin_is_identity(self):
        bbox = (-0.58, 44.84, -0.57, 44.85)
        assert expand_bbox(bbox, 0) == bbox

    def test_default_margin(self):
        assert expand_bbox((0.0, 0.0, 10.0, 20.0)) == pytest.approx((-1.0, -2.0, 11.0, 22.0))

    def test_half_margin(self):
        assert expand_bbox((0.0, 0.0, 10.0, 10.0), 0.5) == pytest.approx((-5.0, -5.0, 15.0, 15.0))

    def test_monotonic_in_margin(self):
        bbox = compute_bbox(MULTI_COORDS)
        small = expand_bbox(bbox, 0.15)
        large = expand_bbox(bbox, 0.5)
        assert large[0] <= small[0]
        assert large[1] <= small[1]
        assert large[2] >= small[2]
        assert large[3] >= small[3]

    def test_negative_margin_shrinks(self):
        assert expand_bbox((0.0, 0.0, 10.0, 10.0), -0.1) == pytest.approx((1.0, 1.0, 9.0, 9.0))

    def test_zero_extent_unchanged(self):
        assert expand_bbox((1.0, 2.0, 1.0, 2.0), 0.5) == (1.0, 2.0, 1.0, 2.0)


# ──────────────────────────────────────────────────────────────
# VALIDATE
# ──────────────────────────────────────────────────────────────

class TestValidateBbox:
    def test_valid_returns_floats(self):
        result = validate_bbox([-1, 44, 0, 45])
        assert result == (-1.0, 44.0, 0.0, 45.0)
        assert all(isinstance(v, float) for v in result)

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="4 values"):
            validate_bbox([1.0, 2.0, 3.0])

    def test_inverted_lon(self):
        with pytest.raises(ValueError, match="minLon < maxLon"):
            validate_bbox((1.0, 44.0, 0.0, 45.0))

    def test_zero_height(self):
        with pytest.raises(ValueError):
            validate_bbox((0.0, 44.0, 1.0, 44.0))

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="must be numbers"):
            validate_bbox((float("nan"), 44.0, 1.0, 45.0))

