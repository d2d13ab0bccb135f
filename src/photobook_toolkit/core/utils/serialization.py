"""
Serialization Utilities

Provides to/from JSON utilities for the composition model.

- `serialize_composition` / `deserialize_composition` for the root entity
- Models with their own `to_dict()` / `from_dict()` are delegated to
- Validation runs before any model object is built
- Transient state (AssetPlacement.should_refit) is never stored
"""

from __future__ import annotations

import json
from typing import Any

from ...layout.models import AssetPlacement, Composition, PageComposition
from ..models.assets import asset_from_dict
from ..models.catalog import LayoutTemplate, ProductColor, ProductTemplate
from ..models.geometry import Size, Transform
from ..schemas.validator import COMPOSITION_SCHEMA_VERSION, validate_composition


# ─────────────────────────────────────────────────────────────────────────────
# Composition Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_composition(composition: Composition) -> dict[str, Any]:
    """
    Serialize a Composition to a dictionary.

    The output can be written to JSON and will pass validation.

    Args:
        composition: Composition to serialize

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "schema_version": COMPOSITION_SCHEMA_VERSION,
        "product": composition.product.to_dict() if composition.product else None,
        "cover_color": composition.cover_color.value,
        "page_color": composition.page_color.value,
        "layouts": [layout.to_dict() for layout in composition.layouts.values()],
        "cover_layout_ids": list(composition.cover_layout_ids),
        "content_layout_ids": list(composition.content_layout_ids),
        "pages": [_serialize_page(page) for page in composition.pages],
    }


def deserialize_composition(
    data: dict[str, Any],
    *,
    validate: bool = True,
) -> Composition:
    """
    Deserialize a Composition from a dictionary.

    Args:
        data: Dictionary from JSON
        validate: Whether to validate structure first

    Returns:
        Composition instance

    Raises:
        ValidationError: If validate=True and data is invalid
        ValueError / KeyError: If data cannot be parsed
    """
    if validate:
        validate_composition(data)

    layouts = {
        layout.id: layout
        for layout in (LayoutTemplate.from_dict(d) for d in data["layouts"])
    }

    return Composition(
        product=ProductTemplate.from_dict(data["product"]) if data.get("product") else None,
        cover_color=ProductColor(data["cover_color"]),
        page_color=ProductColor(data["page_color"]),
        pages=[_deserialize_page(page) for page in data["pages"]],
        layouts=layouts,
        cover_layout_ids=tuple(data.get("cover_layout_ids", [])),
        content_layout_ids=tuple(data.get("content_layout_ids", [])),
    )


def composition_to_json(composition: Composition) -> bytes:
    """Encode a composition as UTF-8 JSON bytes."""
    return json.dumps(serialize_composition(composition), ensure_ascii=False).encode("utf-8")


def composition_from_json(payload: bytes) -> Composition:
    """
    Decode UTF-8 JSON bytes into a validated composition.

    Raises:
        ValidationError, ValueError, KeyError, TypeError: On any bad input
    """
    return deserialize_composition(json.loads(payload.decode("utf-8")))


# ─────────────────────────────────────────────────────────────────────────────
# Pages
# ─────────────────────────────────────────────────────────────────────────────

def _serialize_page(page: PageComposition) -> dict[str, Any]:
    placement = page.placement
    placement_data: dict[str, Any] = {"transform": placement.transform.to_dict()}
    if placement.container_size is not None:
        placement_data["container_size"] = placement.container_size.to_dict()
    if placement.asset is not None:
        placement_data["asset"] = placement.asset.to_dict()

    d: dict[str, Any] = {"layout_id": page.layout_id, "placement": placement_data}
    if page.text is not None:
        d["text"] = page.text
    return d


def _deserialize_page(data: dict[str, Any]) -> PageComposition:
    placement_data = data["placement"]
    container = placement_data.get("container_size")
    asset = placement_data.get("asset")

    # Assign fields directly: the stored transform must not be re-fitted
    placement = AssetPlacement(
        asset=asset_from_dict(asset) if asset else None,
        transform=Transform.from_dict(placement_data["transform"]),
        container_size=Size.from_dict(container) if container else None,
    )
    return PageComposition(
        layout_id=data["layout_id"],
        placement=placement,
        text=data.get("text"),
    )
