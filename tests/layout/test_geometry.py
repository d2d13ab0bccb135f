"""
Unit tests for the geometry engine.

The central property: a placement transform always covers its container,
so no background shows through whatever fit, resize or pan happened.
"""

import math

import pytest

from photobook_toolkit.core.models import Size, Transform
from photobook_toolkit.layout import (
    adjust_for_asset_change,
    bounding_size,
    fit_to_container,
    rescale_for_new_container,
    scale_to_fill,
)

TOLERANCE = 1e-6


def _covers(transform: Transform, asset: Size, container: Size) -> bool:
    """Every container corner lies inside the transformed asset."""
    scale = transform.scale
    cos_a = math.cos(transform.angle)
    sin_a = math.sin(transform.angle)
    half_w = asset.width * scale / 2
    half_h = asset.height * scale / 2
    for x in (-container.width / 2, container.width / 2):
        for y in (-container.height / 2, container.height / 2):
            dx = x - transform.tx
            dy = y - transform.ty
            u = dx * cos_a + dy * sin_a
            v = -dx * sin_a + dy * cos_a
            if abs(u) > half_w + TOLERANCE or abs(v) > half_h + TOLERANCE:
                return False
    return True


SIZE_PAIRS = [
    (Size(400, 200), Size(100, 100)),
    (Size(200, 400), Size(100, 100)),
    (Size(4032, 3024), Size(240, 150)),
    (Size(3024, 4032), Size(240, 150)),
    (Size(50, 50), Size(600, 200)),
    (Size(1, 1000), Size(300, 300)),
]


class TestFitToContainer:
    """Tests for fit_to_container."""

    def test_when_wide_asset_then_height_matches(self):
        transform = fit_to_container(Size(400, 200), Size(100, 100))
        assert transform == Transform.scaling(0.5)

    @pytest.mark.parametrize("asset,container", SIZE_PAIRS)
    def test_when_fitted_then_bbox_covers_with_one_side_equal(self, asset, container):
        transform = fit_to_container(asset, container)
        bbox = bounding_size(transform, asset)

        assert bbox.width >= container.width - TOLERANCE
        assert bbox.height >= container.height - TOLERANCE
        assert (
            bbox.width == pytest.approx(container.width)
            or bbox.height == pytest.approx(container.height)
        )
        assert (transform.tx, transform.ty) == (0.0, 0.0)

    @pytest.mark.parametrize(
        "asset,container",
        [(Size(49, 98), Size(1, 1)), (Size(98, 49), Size(1, 1)), (Size(3, 7), Size(1, 1))] + SIZE_PAIRS,
    )
    def test_when_division_rounds_down_then_bbox_still_covers_exactly(self, asset, container):
        bbox = bounding_size(fit_to_container(asset, container), asset)

        assert bbox.width >= container.width
        assert bbox.height >= container.height

    @pytest.mark.parametrize(
        "asset,container",
        [
            (Size(0, 100), Size(100, 100)),
            (Size(100, 100), Size(100, 0)),
            (Size(-5, 100), Size(100, 100)),
            (Size(math.nan, 100), Size(100, 100)),
            (Size(100, 100), Size(math.inf, 100)),
        ],
    )
    def test_when_degenerate_then_identity(self, asset, container):
        assert fit_to_container(asset, container).is_identity


class TestRescaleForNewContainer:
    """Tests for rescale_for_new_container."""

    def test_when_new_container_landscape_then_width_ratio_used(self):
        transform = Transform(a=2.0, d=2.0, tx=10.0, ty=-6.0)

        result = rescale_for_new_container(Size(100, 100), Size(200, 150), transform)

        assert result == Transform(a=4.0, d=4.0, tx=20.0, ty=-12.0)

    def test_when_new_container_portrait_then_height_ratio_used(self):
        result = rescale_for_new_container(Size(100, 200), Size(30, 100), Transform.scaling(1.0))
        assert result.scale == pytest.approx(0.5)

    def test_when_old_width_zero_then_height_ratio_used(self):
        result = rescale_for_new_container(Size(0, 100), Size(300, 200), Transform.scaling(1.0))
        assert result.scale == pytest.approx(2.0)

    @pytest.mark.parametrize(
        "old,new",
        [
            (None, Size(100, 100)),
            (Size(0, 0), Size(100, 100)),
            (Size(100, 100), Size(0, 100)),
            (Size(math.nan, math.nan), Size(100, 100)),
            (Size(100, 100), Size(math.inf, 100)),
        ],
    )
    def test_when_no_finite_ratio_then_identity(self, old, new):
        result = rescale_for_new_container(old, new, Transform.scaling(3.0))
        assert result.is_identity
        assert result.is_finite

    def test_when_followed_by_adjust_then_covers(self):
        """Rescale alone may under-cover the other axis; adjust fixes it."""
        asset = Size(400, 400)
        old, new = Size(100, 100), Size(100, 300)
        transform = fit_to_container(asset, old)

        rescaled = rescale_for_new_container(old, new, transform)
        adjusted = adjust_for_asset_change(rescaled, asset, new)

        assert _covers(adjusted, asset, new)


class TestAdjustForAssetChange:
    """Tests for adjust_for_asset_change."""

    def test_when_scale_too_small_then_raised_to_cover(self):
        result = adjust_for_asset_change(Transform.scaling(0.1), Size(400, 200), Size(100, 100))
        assert result.scale == pytest.approx(0.5)

    def test_when_scale_large_enough_then_kept(self):
        result = adjust_for_asset_change(Transform.scaling(2.0), Size(400, 200), Size(100, 100))
        assert result.scale == pytest.approx(2.0)

    def test_when_translated_past_edge_then_clamped(self):
        transform = Transform(a=1.0, d=1.0, tx=80.0, ty=30.0)

        result = adjust_for_asset_change(transform, Size(200, 100), Size(100, 100))

        assert result.tx == pytest.approx(50.0)
        assert result.ty == pytest.approx(0.0)

    def test_when_rotated_then_angle_kept_and_scale_covers_rotated_span(self):
        transform = Transform.from_components(1.0, math.pi / 4)

        result = adjust_for_asset_change(transform, Size(100, 100), Size(100, 100))

        assert result.angle == pytest.approx(math.pi / 4)
        assert result.scale == pytest.approx(math.sqrt(2))
        assert _covers(result, Size(100, 100), Size(100, 100))

    @pytest.mark.parametrize("asset,container", SIZE_PAIRS)
    @pytest.mark.parametrize(
        "transform",
        [
            Transform.scaling(0.01),
            Transform(a=3.0, d=3.0, tx=1e4, ty=-1e4),
            Transform.from_components(0.5, 0.3, tx=25.0, ty=-40.0),
            Transform.from_components(2.0, -1.2, tx=-300.0, ty=10.0),
        ],
    )
    def test_when_adjusted_then_container_covered(self, asset, container, transform):
        result = adjust_for_asset_change(transform, asset, container)
        assert _covers(result, asset, container)

    def test_when_degenerate_then_identity(self):
        result = adjust_for_asset_change(Transform.scaling(2.0), Size(0, 10), Size(10, 10))
        assert result.is_identity


class TestScaleToFill:
    """Tests for scale_to_fill."""

    def test_when_unrotated_then_max_of_axis_ratios(self):
        assert scale_to_fill(Size(300, 100), Size(100, 100), 0.0) == pytest.approx(3.0)

    def test_when_quarter_turn_then_axes_swap(self):
        scale = scale_to_fill(Size(300, 100), Size(100, 300), math.pi / 2)
        assert scale == pytest.approx(1.0)
