"""
Module: layout.models

Purpose:
    Mutable composition model owned by the CompositionStore: the
    placement of an asset in a page container, the pages themselves,
    and the Composition aggregate that gets persisted.

Key Classes:
    - AssetPlacement: Asset + transform + container size
    - PageComposition: One page (layout id, placement, text)
    - Composition: Product, colours, ordered pages, layout arena

Dependencies:
    - layout.geometry: Transform computation
    - core.models: Asset, LayoutTemplate, ProductTemplate, Size, Transform

Used By:
    - layout.store: All mutations
    - core.utils.serialization: Persistence format
    - build.parameters: PDF request parameters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.models.assets import Asset
from ..core.models.catalog import LayoutTemplate, ProductColor, ProductTemplate
from ..core.models.geometry import Size, Transform
from .geometry import adjust_for_asset_change, fit_to_container, rescale_for_new_container


@dataclass
class AssetPlacement:
    """
    An asset bound to a layout container.

    The transform is recomputed whenever the asset or the container size
    changes. While both are set, the transform covers the container.

    Attributes:
        asset: Placed asset, None for an empty container
        transform: Affine placement of the asset in the container
        container_size: Last known container dimensions
        should_refit: Set before a container change caused by a new layout;
            the next size update fits afresh instead of rescaling.
            Transient: never persisted or compared.

    Example:
        >>> placement = AssetPlacement(container_size=Size(100, 100))
        >>> placement.assign_asset(asset)   # 400x200 asset
        >>> placement.transform.scale
        0.5
    """

    asset: Optional[Asset] = None
    transform: Transform = field(default_factory=Transform.identity)
    container_size: Optional[Size] = None
    should_refit: bool = field(default=False, compare=False)

    def assign_asset(self, asset: Optional[Asset]) -> None:
        """Place a new asset (or clear with None) and fit it."""
        self.asset = asset
        self.fit()

    def update_container_size(self, size: Size) -> None:
        """
        Adapt to a new container size.

        Fits afresh when ``should_refit`` is set or there was no previous
        size; otherwise rescales the current transform and restores
        coverage.
        """
        old_size = self.container_size
        self.container_size = size

        if self.should_refit or old_size is None:
            self.should_refit = False
            self.fit()
            return

        self.transform = rescale_for_new_container(old_size, size, self.transform)
        self.adjust_transform()

    def set_transform(self, transform: Transform) -> None:
        """Apply a user pan/zoom/rotate, corrected so no gap appears."""
        self.transform = transform
        self.adjust_transform()

    def adjust_transform(self) -> None:
        """Re-derive scale/translation after the asset or container changed."""
        if self.asset is None or self.container_size is None:
            return
        self.transform = adjust_for_asset_change(
            self.transform, self.asset.size, self.container_size
        )

    def fit(self) -> None:
        """Reset to a cover-fit, discarding rotation and translation."""
        if self.asset is None or self.container_size is None:
            return
        self.transform = fit_to_container(self.asset.size, self.container_size)

    def copy(self) -> AssetPlacement:
        return AssetPlacement(
            asset=self.asset,
            transform=self.transform,
            container_size=self.container_size,
            should_refit=self.should_refit,
        )


@dataclass
class PageComposition:
    """One page of the photobook."""

    layout_id: int
    placement: AssetPlacement = field(default_factory=AssetPlacement)
    text: Optional[str] = None

    @property
    def asset(self) -> Optional[Asset]:
        return self.placement.asset

    def copy(self) -> PageComposition:
        return PageComposition(
            layout_id=self.layout_id,
            placement=self.placement.copy(),
            text=self.text,
        )


@dataclass
class Composition:
    """
    The in-progress photobook (root persisted entity).

    Layout templates live in ``layouts``, an arena keyed by id; pages
    refer to them by id. ``cover_layout_ids`` and ``content_layout_ids``
    are the pools of the selected product, in catalog order.

    Page 0 is the cover.
    """

    product: Optional[ProductTemplate] = None
    cover_color: ProductColor = ProductColor.WHITE
    page_color: ProductColor = ProductColor.WHITE
    pages: List[PageComposition] = field(default_factory=list)
    layouts: Dict[int, LayoutTemplate] = field(default_factory=dict)
    cover_layout_ids: tuple[int, ...] = ()
    content_layout_ids: tuple[int, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def cover_layouts(self) -> list[LayoutTemplate]:
        return [self.layouts[i] for i in self.cover_layout_ids]

    @property
    def content_layouts(self) -> list[LayoutTemplate]:
        return [self.layouts[i] for i in self.content_layout_ids]

    def layout_for(self, page: PageComposition) -> LayoutTemplate:
        return self.layouts[page.layout_id]

    def page_size_for(self, index: int) -> Optional[Size]:
        """Cover size for page 0, inside page size otherwise."""
        if self.product is None:
            return None
        return self.product.cover_size if index == 0 else self.product.page_size

    def container_size_for(self, index: int) -> Optional[Size]:
        """Image container size of a page under its current layout."""
        page_size = self.page_size_for(index)
        if page_size is None:
            return None
        return self.layout_for(self.pages[index]).container_size(page_size)

    def assets(self) -> list[Asset]:
        """Distinct assigned assets, in page order."""
        seen: set[str] = set()
        result: list[Asset] = []
        for page in self.pages:
            asset = page.asset
            if asset is not None and asset.identifier not in seen:
                seen.add(asset.identifier)
                result.append(asset)
        return result

    def asset_identifiers(self) -> list[str]:
        return [asset.identifier for asset in self.assets()]

    def copy(self) -> Composition:
        """Independent snapshot; immutable assets and layouts are shared."""
        return Composition(
            product=self.product,
            cover_color=self.cover_color,
            page_color=self.page_color,
            pages=[page.copy() for page in self.pages],
            layouts=dict(self.layouts),
            cover_layout_ids=self.cover_layout_ids,
            content_layout_ids=self.content_layout_ids,
        )
