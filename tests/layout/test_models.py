"""
Unit tests for AssetPlacement and Composition.
"""

import pytest

from photobook_toolkit.core.models import Size, Transform
from photobook_toolkit.layout import AssetPlacement, Composition, PageComposition


class TestAssetPlacement:
    """Tests for AssetPlacement transform maintenance."""

    def test_when_asset_assigned_then_fitted(self, asset_factory):
        placement = AssetPlacement(container_size=Size(100, 100))

        placement.assign_asset(asset_factory("a", 400, 200))

        assert placement.transform == Transform.scaling(0.5)

    def test_when_no_container_then_transform_untouched(self, asset_factory):
        placement = AssetPlacement()
        placement.assign_asset(asset_factory("a", 400, 200))
        assert placement.transform.is_identity

    def test_when_first_container_size_then_fitted(self, asset_factory):
        placement = AssetPlacement(asset=asset_factory("a", 400, 200))

        placement.update_container_size(Size(200, 200))

        assert placement.transform == Transform.scaling(1.0)

    def test_when_container_grows_then_crop_rescaled(self, asset_factory):
        placement = AssetPlacement(container_size=Size(100, 100))
        placement.assign_asset(asset_factory("a", 400, 200))
        placement.set_transform(Transform(a=1.0, d=1.0, tx=20.0, ty=0.0))

        placement.update_container_size(Size(200, 200))

        assert placement.transform.scale == pytest.approx(2.0)
        assert placement.transform.tx == pytest.approx(40.0)

    def test_when_should_refit_then_fit_discards_user_transform(self, asset_factory):
        placement = AssetPlacement(container_size=Size(100, 100))
        placement.assign_asset(asset_factory("a", 400, 200))
        placement.set_transform(Transform(a=1.0, d=1.0, tx=20.0, ty=0.0))

        placement.should_refit = True
        placement.update_container_size(Size(200, 200))

        assert placement.transform == Transform.scaling(1.0)
        assert not placement.should_refit

    def test_when_user_transform_exposes_edge_then_corrected(self, asset_factory):
        placement = AssetPlacement(container_size=Size(100, 100))
        placement.assign_asset(asset_factory("a", 400, 200))

        placement.set_transform(Transform.scaling(0.2))

        assert placement.transform.scale == pytest.approx(0.5)

    def test_when_copied_then_independent(self, asset_factory):
        placement = AssetPlacement(container_size=Size(100, 100))
        placement.assign_asset(asset_factory("a", 400, 200))
        clone = placement.copy()

        clone.set_transform(Transform.scaling(3.0))

        assert placement.transform == Transform.scaling(0.5)


class TestComposition:
    """Tests for Composition helpers."""

    def test_when_asset_repeated_then_listed_once_in_page_order(self, asset_factory, landscape_layout):
        a, b = asset_factory("a"), asset_factory("b")
        pages = [
            PageComposition(landscape_layout.id, AssetPlacement(asset=b)),
            PageComposition(landscape_layout.id, AssetPlacement(asset=a)),
            PageComposition(landscape_layout.id, AssetPlacement(asset=b)),
            PageComposition(landscape_layout.id),
        ]
        composition = Composition(pages=pages, layouts={landscape_layout.id: landscape_layout})

        assert composition.asset_identifiers() == ["b", "a"]

    def test_when_no_product_then_no_container_size(self, landscape_layout):
        composition = Composition(
            pages=[PageComposition(landscape_layout.id)],
            layouts={landscape_layout.id: landscape_layout},
        )
        assert composition.container_size_for(0) is None
