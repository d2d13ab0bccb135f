"""
Module: layout.store

Purpose:
    Own the in-progress Composition and expose every mutation on it.
    The store is constructed explicitly and handed to collaborators;
    there is no process-wide "current photobook".

Key Classes:
    - CompositionStore: Mutations, snapshots, persist/restore

Algorithm (first product selection):
    1. First asset goes on the cover with the first cover layout
    2. Every other asset gets its own page
    3. Layouts come round-robin from the landscape or portrait pool
       (non-empty, single-page layouts) matching the asset orientation

Algorithm (switching product):
    Every page keeps its assets/text and moves to the first layout of the
    same category in the new pools, or to the pool's first layout.

Concurrency:
    All mutations hold a re-entrant lock. Other components must work on
    snapshot() copies, never on the live composition.

Dependencies:
    - layout.models: Composition, PageComposition, AssetPlacement
    - persistence.adapter: CompositionPersistence (injected)

Used By:
    - order.place_order
    - UI layer (external)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, List, Optional, Sequence

from ..core.errors import InvalidPageIndexError, MissingLayoutsError, PersistenceError
from ..core.models.assets import Asset
from ..core.models.catalog import LayoutTemplate, ProductColor, ProductTemplate
from ..core.models.geometry import Size, Transform
from .models import Composition, PageComposition

if TYPE_CHECKING:
    from ..persistence.adapter import CompositionPersistence
    from ..upload.orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


class CompositionStore:
    """
    Single owner of a photobook composition.

    Usage:
        store = CompositionStore(CompositionPersistence(FileBlobStore(root)))
        store.select_product(product, assets, cover_layouts, layouts)
        store.set_text(3, "Summer 2024")
        store.persist()

    Attributes:
        persistence: Where persist()/restore() read and write
    """

    def __init__(
        self,
        persistence: Optional[CompositionPersistence] = None,
        composition: Optional[Composition] = None,
    ) -> None:
        self.persistence = persistence
        self._composition = composition if composition is not None else Composition()
        self._lock = threading.RLock()

    # ─────────────────────────────────────────────────────────────────────────
    # Read access
    # ─────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> Composition:
        """Independent copy of the current composition."""
        with self._lock:
            return self._composition.copy()

    @property
    def product(self) -> Optional[ProductTemplate]:
        with self._lock:
            return self._composition.product

    @property
    def page_count(self) -> int:
        with self._lock:
            return self._composition.page_count

    def page(self, index: int) -> PageComposition:
        """Copy of one page."""
        with self._lock:
            return self._page(index).copy()

    # ─────────────────────────────────────────────────────────────────────────
    # Product selection
    # ─────────────────────────────────────────────────────────────────────────

    def select_product(
        self,
        template: ProductTemplate,
        assets: Sequence[Asset],
        cover_layouts: Sequence[LayoutTemplate],
        layouts: Sequence[LayoutTemplate],
    ) -> None:
        """
        Select (or switch) the photobook product.

        Args:
            template: Product to use
            assets: Photos in page order; ignored when switching product
            cover_layouts: Cover layout pool of the product
            layouts: Inside page layout pool of the product

        Raises:
            MissingLayoutsError: If a pool is empty, or no single-page
                layout with an image box exists for the assets
        """
        cover_pool = list(cover_layouts)
        content_pool = list(layouts)
        if not cover_pool or not content_pool:
            raise MissingLayoutsError(
                f"Missing layouts for product {template.name or template.id}: "
                f"{len(cover_pool)} cover, {len(content_pool)} inside"
            )

        with self._lock:
            if self._composition.product is None:
                composition = self._compose(template, list(assets), cover_pool, content_pool)
                logger.info(
                    f"Composed {composition.page_count} pages for product {template.id}"
                )
            else:
                composition = self._remap(template, cover_pool, content_pool)
                logger.info(
                    f"Switched {composition.page_count} pages to product {template.id}"
                )
            self._composition = composition

    def _compose(
        self,
        template: ProductTemplate,
        assets: List[Asset],
        cover_pool: List[LayoutTemplate],
        content_pool: List[LayoutTemplate],
    ) -> Composition:
        """Build a fresh composition, one asset per page."""
        usable = [l for l in content_pool if not l.is_empty and not l.is_double]
        landscape_layouts = [l for l in usable if l.is_landscape]
        portrait_layouts = [l for l in usable if not l.is_landscape]
        if len(assets) > 1 and not usable:
            raise MissingLayoutsError(
                f"No single-page layouts available for product {template.id}"
            )

        composition = Composition(
            product=template,
            cover_color=self._composition.cover_color,
            page_color=self._composition.page_color,
            layouts={l.id: l for l in cover_pool + content_pool},
            cover_layout_ids=tuple(l.id for l in cover_pool),
            content_layout_ids=tuple(l.id for l in content_pool),
        )

        cover_asset = assets.pop(0) if assets else None
        _append_page(composition, cover_pool[0], cover_asset)

        next_landscape = 0
        next_portrait = 0
        for asset in assets:
            if (asset.is_landscape and landscape_layouts) or not portrait_layouts:
                layout = landscape_layouts[next_landscape]
                next_landscape = (next_landscape + 1) % len(landscape_layouts)
            else:
                layout = portrait_layouts[next_portrait]
                next_portrait = (next_portrait + 1) % len(portrait_layouts)
            _append_page(composition, layout, asset)

        return composition

    def _remap(
        self,
        template: ProductTemplate,
        cover_pool: List[LayoutTemplate],
        content_pool: List[LayoutTemplate],
    ) -> Composition:
        """Move every page to an equivalent layout of the new product."""
        composition = self._composition.copy()
        old_layouts = composition.layouts

        for index, page in enumerate(composition.pages):
            old_layout = old_layouts.get(page.layout_id)
            category = old_layout.category if old_layout is not None else None
            if index == 0:
                candidates, fallback = cover_pool + content_pool, cover_pool[0]
            else:
                candidates, fallback = content_pool, content_pool[0]

            new_layout = next((l for l in candidates if l.category == category), None)
            if new_layout is None:
                logger.debug(f"No '{category}' layout in new product, page {index} uses {fallback.id}")
                new_layout = fallback
            page.layout_id = new_layout.id

        composition.product = template
        composition.layouts = {l.id: l for l in cover_pool + content_pool}
        composition.cover_layout_ids = tuple(l.id for l in cover_pool)
        composition.content_layout_ids = tuple(l.id for l in content_pool)

        for index, page in enumerate(composition.pages):
            container = composition.container_size_for(index)
            if container is not None:
                page.placement.update_container_size(container)

        return composition

    # ─────────────────────────────────────────────────────────────────────────
    # Page mutations
    # ─────────────────────────────────────────────────────────────────────────

    def set_layout(self, index: int, layout: LayoutTemplate) -> None:
        """
        Use ``layout`` for a page. The asset is re-fitted to the new
        container.

        Raises:
            InvalidPageIndexError: If index is out of range
        """
        with self._lock:
            page = self._page(index)
            self._composition.layouts[layout.id] = layout
            page.layout_id = layout.id
            page.placement.should_refit = True

            container = self._composition.container_size_for(index)
            if container is not None:
                page.placement.update_container_size(container)

    def set_asset(self, index: int, asset: Optional[Asset]) -> None:
        """
        Place ``asset`` on a page (None empties the container).

        Raises:
            InvalidPageIndexError: If index is out of range
        """
        with self._lock:
            page = self._page(index)
            page.placement.assign_asset(asset)

    def set_text(self, index: int, text: Optional[str]) -> None:
        """
        Raises:
            InvalidPageIndexError: If index is out of range
        """
        with self._lock:
            self._page(index).text = text

    def set_transform(self, index: int, transform: Transform) -> None:
        """Apply a user pan/zoom/rotate to a page's asset."""
        with self._lock:
            self._page(index).placement.set_transform(transform)

    def update_container_size(self, index: int, size: Size) -> None:
        """
        Report a recalculated container size for a page.

        Rescales the current crop, or fits afresh if the page's layout
        changed since the last update.

        Raises:
            InvalidPageIndexError: If index is out of range
        """
        with self._lock:
            self._page(index).placement.update_container_size(size)

    def set_cover_color(self, color: ProductColor) -> None:
        with self._lock:
            self._composition.cover_color = ProductColor(color)

    def set_page_color(self, color: ProductColor) -> None:
        with self._lock:
            self._composition.page_color = ProductColor(color)

    def add_page(
        self,
        layout: LayoutTemplate,
        asset: Optional[Asset] = None,
        index: Optional[int] = None,
    ) -> int:
        """
        Insert a page after the cover.

        Args:
            layout: Layout for the new page
            asset: Optional asset to place
            index: Insert position (1..page_count), default at the end

        Returns:
            Index of the new page

        Raises:
            MissingLayoutsError: If no product is selected yet
            InvalidPageIndexError: If index is not a valid insert position
        """
        with self._lock:
            composition = self._composition
            if composition.product is None:
                raise MissingLayoutsError("Select a product before adding pages")

            count = composition.page_count
            position = count if index is None else index
            if not 1 <= position <= count:
                raise InvalidPageIndexError(position, count + 1)

            composition.layouts[layout.id] = layout
            page = PageComposition(layout_id=layout.id)
            composition.pages.insert(position, page)
            _prepare_placement(composition, position, asset)
            return position

    def remove_page(self, index: int) -> None:
        """
        Raises:
            InvalidPageIndexError: If index is out of range
            ValueError: If index is the cover
        """
        with self._lock:
            self._page(index)
            if index == 0:
                raise ValueError("The cover page cannot be removed")
            del self._composition.pages[index]

    def move_page(self, source: int, destination: int) -> None:
        """
        Move an inside page. The cover stays first.

        Raises:
            InvalidPageIndexError: If either index is out of range
            ValueError: If either index is the cover
        """
        with self._lock:
            self._page(source)
            self._page(destination)
            if source == 0 or destination == 0:
                raise ValueError("The cover page cannot be moved")
            page = self._composition.pages.pop(source)
            self._composition.pages.insert(destination, page)

    # ─────────────────────────────────────────────────────────────────────────
    # Persistence and ordering
    # ─────────────────────────────────────────────────────────────────────────

    def persist(self) -> None:
        """
        Save the composition durably.

        Raises:
            PersistenceError: If no persistence is configured or saving fails
        """
        persistence = self._require_persistence()
        persistence.save(self.snapshot())

    def restore(self) -> Composition:
        """
        Replace the live composition with the stored one.

        Returns:
            Snapshot of the restored composition

        Raises:
            PersistenceError: If loading fails; the live composition is
                left exactly as it was
        """
        persistence = self._require_persistence()
        restored = persistence.load()
        with self._lock:
            self._composition = restored
            return restored.copy()

    def start_order(self, uploader: UploadOrchestrator) -> int:
        """
        Persist, then hand every placed asset to the uploader.

        Returns:
            Number of distinct assets handed over

        Raises:
            PersistenceError: If saving fails; nothing is enqueued
        """
        self.persist()
        assets = self.snapshot().assets()
        uploader.enqueue(assets)
        logger.info(f"Started order with {len(assets)} assets")
        return len(assets)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _page(self, index: int) -> PageComposition:
        pages = self._composition.pages
        if not 0 <= index < len(pages):
            raise InvalidPageIndexError(index, len(pages))
        return pages[index]

    def _require_persistence(self) -> CompositionPersistence:
        if self.persistence is None:
            raise PersistenceError("No persistence configured for this store")
        return self.persistence


def _append_page(
    composition: Composition,
    layout: LayoutTemplate,
    asset: Optional[Asset],
) -> None:
    composition.pages.append(PageComposition(layout_id=layout.id))
    _prepare_placement(composition, composition.page_count - 1, asset)


def _prepare_placement(
    composition: Composition,
    index: int,
    asset: Optional[Asset],
) -> None:
    """Give a new page its container size, then fit the asset."""
    placement = composition.pages[index].placement
    container = composition.container_size_for(index)
    if container is not None:
        placement.update_container_size(container)
    placement.assign_asset(asset)
