"""
Unit tests for CompositionStore: composing, product switching, page
mutations and persistence round trips.
"""

import threading
from unittest.mock import MagicMock

import pytest

from photobook_toolkit.core.errors import (
    InvalidPageIndexError,
    MissingLayoutsError,
    PersistenceError,
)
from photobook_toolkit.core.models import (
    LayoutBox,
    LayoutTemplate,
    ProductColor,
    ProductTemplate,
    Rect,
    Size,
    Transform,
)
from photobook_toolkit.layout import CompositionStore, fit_to_container
from photobook_toolkit.persistence import CompositionPersistence, FileBlobStore


def _layout(layout_id: int, category: str, landscape: bool = True) -> LayoutTemplate:
    rect = Rect(0.1, 0.1, 0.8, 0.5) if landscape else Rect(0.1, 0.1, 0.5, 0.8)
    return LayoutTemplate(
        id=layout_id,
        category=category,
        image_box=LayoutBox(id=layout_id * 10, rect=rect),
    )


def _product(product_id: int, cover_ids, layout_ids, side: float = 300) -> ProductTemplate:
    return ProductTemplate(
        id=product_id,
        template_id=f"template-{product_id}",
        name=f"Book {product_id}",
        cover_size=Size(side, side),
        page_size=Size(side, side),
        cover_layout_ids=tuple(cover_ids),
        layout_ids=tuple(layout_ids),
    )


@pytest.fixture
def store(tmp_path) -> CompositionStore:
    return CompositionStore(persistence=CompositionPersistence(FileBlobStore(tmp_path / "blobs")))


class TestSelectProduct:
    """Tests for the initial composition."""

    def test_when_assets_given_then_cover_plus_one_page_per_asset(
        self, store, product, cover_layout, content_layouts, asset_factory
    ):
        assets = [asset_factory(name) for name in "abc"]

        store.select_product(product, assets, [cover_layout], content_layouts)

        snapshot = store.snapshot()
        assert snapshot.page_count == 3
        assert snapshot.pages[0].layout_id == cover_layout.id
        assert snapshot.asset_identifiers() == ["a", "b", "c"]

    def test_when_layouts_pooled_by_orientation_then_round_robin(
        self, store, product, cover_layout, portrait_layout, asset_factory
    ):
        """Landscape assets rotate through landscape layouts, portraits through portrait ones."""
        land_a, land_b = _layout(10, "land-a"), _layout(13, "land-b")
        assets = [
            asset_factory("cover"),
            asset_factory("l1", 400, 300),
            asset_factory("l2", 400, 300),
            asset_factory("p1", 300, 400),
            asset_factory("l3", 400, 300),
        ]

        store.select_product(product, assets, [cover_layout], [land_a, portrait_layout, land_b])

        layout_ids = [page.layout_id for page in store.snapshot().pages]
        assert layout_ids == [cover_layout.id, 10, 13, portrait_layout.id, 10]

    def test_when_no_portrait_layouts_then_landscape_used(
        self, store, product, cover_layout, landscape_layout, asset_factory
    ):
        assets = [asset_factory("cover"), asset_factory("p1", 300, 400)]

        store.select_product(product, assets, [cover_layout], [landscape_layout])

        assert store.page(1).layout_id == landscape_layout.id

    def test_when_no_assets_then_single_empty_cover(self, store, product, cover_layout, content_layouts):
        store.select_product(product, [], [cover_layout], content_layouts)

        assert store.page_count == 1
        assert store.page(0).asset is None

    def test_when_cover_pool_empty_then_missing_layouts(self, store, product, content_layouts):
        with pytest.raises(MissingLayoutsError):
            store.select_product(product, [], [], content_layouts)
        assert store.product is None

    def test_when_only_blank_or_double_layouts_then_missing_layouts(
        self, store, product, cover_layout, asset_factory
    ):
        blank = LayoutTemplate(id=40, category="blank")
        double = LayoutTemplate(
            id=41,
            category="double",
            image_box=LayoutBox(id=1, rect=Rect(0, 0, 1, 1)),
            is_double=True,
        )
        assets = [asset_factory("a"), asset_factory("b")]

        with pytest.raises(MissingLayoutsError):
            store.select_product(product, assets, [cover_layout], [blank, double])

    def test_when_composed_then_every_placement_covers_container(
        self, store, product, cover_layout, content_layouts, asset_factory
    ):
        assets = [asset_factory("a", 4032, 3024), asset_factory("b", 3024, 4032)]

        store.select_product(product, assets, [cover_layout], content_layouts)

        snapshot = store.snapshot()
        for page in snapshot.pages:
            placement = page.placement
            expected = fit_to_container(placement.asset.size, placement.container_size)
            assert placement.transform == expected


class TestProductSwitch:
    """Tests for switching product on an existing composition."""

    def test_when_switched_then_layouts_remapped_by_category(self, store, asset_factory):
        """Pages [A,B,A,C,A] onto a product with only C and A layouts."""
        cover = _layout(1, "cover")
        a, b, c = _layout(21, "A"), _layout(22, "B"), _layout(23, "C", landscape=False)
        first = _product(1, [1], [21, 22, 23])
        assets = [asset_factory(f"asset{i}") for i in range(6)]
        store.select_product(first, assets, [cover], [a, b, c])
        for index, layout in enumerate([a, b, a, c, a], start=1):
            store.set_layout(index, layout)
            store.set_text(index, f"caption {index}")
        before = store.snapshot()

        new_cover = _layout(30, "cover")
        new_c, new_a = _layout(33, "C", landscape=False), _layout(31, "A")
        second = _product(2, [30], [33, 31], side=600)
        store.select_product(second, [], [new_cover], [new_c, new_a])

        after = store.snapshot()
        assert after.product == second
        assert [p.layout_id for p in after.pages] == [30, 31, 33, 31, 33, 31]
        assert after.asset_identifiers() == before.asset_identifiers()
        assert [p.text for p in after.pages] == [p.text for p in before.pages]
        assert set(after.layouts) == {30, 31, 33}

    def test_when_switched_then_container_sizes_follow_new_pages(
        self, store, product, cover_layout, content_layouts, asset_factory
    ):
        store.select_product(product, [asset_factory("a"), asset_factory("b")], [cover_layout], content_layouts)
        bigger = _product(2, [cover_layout.id], [l.id for l in content_layouts], side=600)

        store.select_product(bigger, [], [cover_layout], content_layouts)

        assert store.page(0).placement.container_size == Size(600.0, 600.0)
        assert store.page(0).placement.transform.scale == pytest.approx(
            fit_to_container(store.page(0).asset.size, Size(600, 600)).scale
        )


class TestPageMutations:
    """Tests for per-page mutations."""

    @pytest.fixture
    def composed(self, store, product, cover_layout, content_layouts, asset_factory):
        assets = [asset_factory(name, 400, 300) for name in "abc"]
        store.select_product(product, assets, [cover_layout], content_layouts)
        return store

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_when_index_out_of_range_then_invalid_page_index(self, composed, landscape_layout, index):
        with pytest.raises(InvalidPageIndexError):
            composed.set_layout(index, landscape_layout)
        with pytest.raises(IndexError):
            composed.set_text(index, "x")

    def test_when_layout_changed_then_asset_refitted(self, composed, portrait_layout):
        composed.set_transform(1, Transform(a=2.0, d=2.0, tx=15.0, ty=0.0))

        composed.set_layout(1, portrait_layout)

        page = composed.page(1)
        assert page.layout_id == portrait_layout.id
        assert page.placement.transform == fit_to_container(
            page.asset.size, page.placement.container_size
        )

    def test_when_asset_replaced_then_fitted(self, composed, asset_factory):
        composed.set_asset(2, asset_factory("z", 100, 1000))
        page = composed.page(2)
        assert page.asset.identifier == "z"
        assert page.placement.transform == fit_to_container(
            Size(100, 1000), page.placement.container_size
        )

    def test_when_page_added_then_inserted_after_cover(self, composed, landscape_layout, asset_factory):
        index = composed.add_page(landscape_layout, asset_factory("new"), index=1)

        assert index == 1
        assert composed.page_count == 4
        assert composed.page(1).asset.identifier == "new"

    def test_when_page_added_at_cover_position_then_error(self, composed, landscape_layout):
        with pytest.raises(InvalidPageIndexError):
            composed.add_page(landscape_layout, index=0)

    def test_when_no_product_then_add_page_rejected(self, store, landscape_layout):
        with pytest.raises(MissingLayoutsError):
            store.add_page(landscape_layout)

    def test_when_page_moved_then_order_changes(self, composed):
        composed.move_page(1, 2)
        assert composed.snapshot().asset_identifiers() == ["a", "c", "b"]

    def test_when_cover_removed_or_moved_then_value_error(self, composed):
        with pytest.raises(ValueError):
            composed.remove_page(0)
        with pytest.raises(ValueError):
            composed.move_page(0, 2)

    def test_when_page_removed_then_count_drops(self, composed):
        composed.remove_page(2)
        assert composed.snapshot().asset_identifiers() == ["a", "b"]

    def test_when_colors_set_then_stored(self, composed):
        composed.set_cover_color(ProductColor.BLACK)
        composed.set_page_color("black")
        snapshot = composed.snapshot()
        assert (snapshot.cover_color, snapshot.page_color) == (ProductColor.BLACK, ProductColor.BLACK)

    def test_when_snapshot_mutated_then_store_unaffected(self, composed):
        snapshot = composed.snapshot()
        snapshot.pages[1].text = "changed"
        assert composed.page(1).text is None


class TestPersistence:
    """Tests for persist/restore through the store."""

    def test_when_persisted_and_restored_then_identical(
        self, store, product, cover_layout, content_layouts, asset_factory
    ):
        assets = [asset_factory("a", 4032, 3024), asset_factory("b", 3024, 4032)]
        store.select_product(product, assets, [cover_layout], content_layouts)
        store.set_transform(1, Transform.from_components(1.7, 0.25, tx=3.3, ty=-1.1))
        store.set_text(2, "Last page")
        expected = store.snapshot()

        store.persist()
        restored_store = CompositionStore(persistence=store.persistence)
        restored = restored_store.restore()

        assert restored == expected
        assert restored.pages[1].placement.transform.as_tuple() == expected.pages[1].placement.transform.as_tuple()

    def test_when_stored_data_corrupt_then_state_untouched(
        self, tmp_path, product, cover_layout, content_layouts, asset_factory
    ):
        blobs = FileBlobStore(tmp_path / "blobs")
        store = CompositionStore(persistence=CompositionPersistence(blobs))
        store.select_product(product, [asset_factory("a")], [cover_layout], content_layouts)
        before = store.snapshot()
        blobs.write("photobook", b"{not json")

        with pytest.raises(PersistenceError):
            store.restore()

        assert store.snapshot() == before

    def test_when_no_persistence_then_persist_fails(self):
        with pytest.raises(PersistenceError):
            CompositionStore().persist()


class TestStartOrder:
    """Tests for handing assets to the uploader."""

    def test_when_started_then_persisted_and_distinct_assets_enqueued(
        self, store, product, cover_layout, content_layouts, asset_factory
    ):
        a = asset_factory("a")
        store.select_product(product, [a, asset_factory("b")], [cover_layout], content_layouts)
        store.set_asset(1, a)
        uploader = MagicMock()

        count = store.start_order(uploader)

        assert count == 1
        uploader.enqueue.assert_called_once()
        assert [asset.identifier for asset in uploader.enqueue.call_args[0][0]] == ["a"]
        assert store.persistence.exists()

    def test_when_persist_fails_then_nothing_enqueued(self, product, cover_layout, content_layouts, asset_factory):
        store = CompositionStore()
        store.select_product(product, [asset_factory("a")], [cover_layout], content_layouts)
        uploader = MagicMock()

        with pytest.raises(PersistenceError):
            store.start_order(uploader)

        uploader.enqueue.assert_not_called()


class TestConcurrentReads:
    """Tests for reads taking the store lock."""

    def test_when_lock_held_then_product_read_waits(self, product, cover_layout, content_layouts, asset_factory):
        store = CompositionStore()
        store.select_product(product, [asset_factory("a")], [cover_layout], content_layouts)
        held = threading.Event()
        release = threading.Event()
        results = []

        def hold_lock():
            with store._lock:
                held.set()
                release.wait(5.0)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        assert held.wait(5.0)
        reader = threading.Thread(target=lambda: results.append(store.product))
        reader.start()
        reader.join(0.1)

        assert reader.is_alive()
        release.set()
        reader.join(5.0)
        holder.join(5.0)
        assert results == [product]
