"""
Module: catalog

Purpose:
    Immutable catalog data fetched from the backend: the photobook
    products on offer and the layout templates their pages can use.
    Layouts are shared by reference between pages; pages only keep
    the layout id.

Key Classes:
    - ProductColor: Cover/page colour choice
    - LayoutBox: Page-relative container rectangle
    - LayoutTemplate: Container geometry for one page
    - ProductTemplate: A photobook product and its layout pools
    - Catalog: Arena of layouts keyed by id, plus the products

Dependencies:
    - dataclasses (std)
    - .geometry: Rect, Size

Used By:
    - layout.store: Product selection and layout assignment
    - api.client: Catalog parsing
    - core.utils.serialization
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .geometry import Rect, Size


class ProductColor(str, Enum):
    WHITE = "white"
    BLACK = "black"


@dataclass(frozen=True)
class LayoutBox:
    """
    A container on a page, in page-relative units.

    Example:
        >>> box = LayoutBox(id=1, rect=Rect(0.0, 0.0, 1.0, 0.5))
        >>> box.container_size(Size(400, 600))
        Size(width=400.0, height=300.0)
    """

    id: int
    rect: Rect

    @property
    def is_landscape(self) -> bool:
        return self.rect.is_landscape

    def container_size(self, page_size: Size) -> Size:
        """Absolute container dimensions on a page of ``page_size``."""
        return Size(
            float(self.rect.width * page_size.width),
            float(self.rect.height * page_size.height),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "rect": self.rect.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> LayoutBox:
        return cls(id=data["id"], rect=Rect.from_dict(data["rect"]))


@dataclass(frozen=True)
class LayoutTemplate:
    """
    Container geometry for a page (immutable catalog data).

    Attributes:
        id: Catalog identifier
        category: Category shared by equivalent layouts across products
        image_box: Photo container, None for text-only or blank layouts
        text_box: Optional text container
        is_double: Layout spans a two-page spread
    """

    id: int
    category: str
    image_box: Optional[LayoutBox] = None
    text_box: Optional[LayoutBox] = None
    is_double: bool = False

    @property
    def is_empty(self) -> bool:
        """Blank page: nothing to place."""
        return self.image_box is None and self.text_box is None

    @property
    def is_landscape(self) -> bool:
        return self.image_box is not None and self.image_box.is_landscape

    def container_size(self, page_size: Size) -> Optional[Size]:
        """Image container size on a page, widened for double spreads."""
        if self.image_box is None:
            return None
        if self.is_double:
            page_size = Size(page_size.width * 2, page_size.height)
        return self.image_box.container_size(page_size)

    def to_dict(self) -> dict:
        d: dict = {"id": self.id, "category": self.category}
        if self.image_box is not None:
            d["image_box"] = self.image_box.to_dict()
        if self.text_box is not None:
            d["text_box"] = self.text_box.to_dict()
        if self.is_double:
            d["is_double"] = True
        return d

    @classmethod
    def from_dict(cls, data: dict) -> LayoutTemplate:
        return cls(
            id=data["id"],
            category=data["category"],
            image_box=LayoutBox.from_dict(data["image_box"]) if data.get("image_box") else None,
            text_box=LayoutBox.from_dict(data["text_box"]) if data.get("text_box") else None,
            is_double=data.get("is_double", False),
        )


@dataclass(frozen=True)
class ProductTemplate:
    """
    A photobook product (immutable catalog data).

    Attributes:
        id: Catalog identifier
        template_id: Identifier the backend expects when building PDFs
        name: Display name
        cover_size: Cover page size in points
        page_size: Inside page size in points
        cover_layout_ids: Layouts allowed on the cover
        layout_ids: Layouts allowed on inside pages
        min_pages / max_pages: Page count limits for ordering
    """

    id: int
    template_id: str
    name: str
    cover_size: Size
    page_size: Size
    cover_layout_ids: tuple[int, ...] = ()
    layout_ids: tuple[int, ...] = ()
    min_pages: int = 20
    max_pages: int = 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "template_id": self.template_id,
            "name": self.name,
            "cover_size": self.cover_size.to_dict(),
            "page_size": self.page_size.to_dict(),
            "cover_layout_ids": list(self.cover_layout_ids),
            "layout_ids": list(self.layout_ids),
            "min_pages": self.min_pages,
            "max_pages": self.max_pages,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ProductTemplate:
        return cls(
            id=data["id"],
            template_id=data["template_id"],
            name=data.get("name", ""),
            cover_size=Size.from_dict(data["cover_size"]),
            page_size=Size.from_dict(data["page_size"]),
            cover_layout_ids=tuple(data.get("cover_layout_ids", [])),
            layout_ids=tuple(data.get("layout_ids", [])),
            min_pages=data.get("min_pages", 20),
            max_pages=data.get("max_pages", 100),
        )


@dataclass(frozen=True)
class Catalog:
    """
    Products plus an arena of layouts keyed by id.

    Example:
        >>> catalog = Catalog.from_items(products, layouts)
        >>> covers = catalog.cover_layouts(catalog.products[0])
    """

    products: tuple[ProductTemplate, ...]
    layouts: dict[int, LayoutTemplate] = field(default_factory=dict)

    @classmethod
    def from_items(
        cls,
        products: Iterable[ProductTemplate],
        layouts: Iterable[LayoutTemplate],
    ) -> Catalog:
        """Build a catalog with products ordered by cover width."""
        ordered = tuple(sorted(products, key=lambda p: p.cover_size.width))
        return cls(products=ordered, layouts={layout.id: layout for layout in layouts})

    def layout(self, layout_id: int) -> Optional[LayoutTemplate]:
        return self.layouts.get(layout_id)

    def product(self, product_id: int) -> Optional[ProductTemplate]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def cover_layouts(self, product: ProductTemplate) -> list[LayoutTemplate]:
        """Cover layout pool for a product, in the product's order."""
        return [self.layouts[i] for i in product.cover_layout_ids if i in self.layouts]

    def content_layouts(self, product: ProductTemplate) -> list[LayoutTemplate]:
        """Inside page layout pool for a product, in the product's order."""
        return [self.layouts[i] for i in product.layout_ids if i in self.layouts]
