"""
Module: build.parameters

Purpose:
    Derive the PDF build request for a composition.

Key Functions:
    - pdf_parameters(): Composition + uploaded references -> request body

Request body:
    {
        "productId": 3,
        "productTemplateId": "hdbook_127x127",
        "coverColor": "white",
        "pageColor": "white",
        "pages": [
            {
                "layoutId": 10,
                "text": "Summer",
                "asset": {
                    "url": "https://...",
                    "width": 4000, "height": 3000,
                    "transform": [a, b, c, d, tx, ty],
                    "containerSize": {"width": 300, "height": 300}
                }
            }
        ]
    }
"""

from __future__ import annotations

from typing import Callable, Optional

from ..core.errors import MissingTemplateInfoError
from ..layout.models import Composition, PageComposition

ReferenceLookup = Callable[[str], Optional[str]]


def pdf_parameters(composition: Composition, reference_lookup: ReferenceLookup) -> dict:
    """
    Build the PDF request body.

    Args:
        composition: Composition snapshot to build
        reference_lookup: Maps an asset identifier to its uploaded URL

    Raises:
        MissingTemplateInfoError: No product or template id, or a placed
            asset has not been uploaded
    """
    product = composition.product
    if product is None:
        raise MissingTemplateInfoError("No product selected")
    if not product.template_id:
        raise MissingTemplateInfoError(f"Product {product.id} has no template id")

    pages = [
        _page_parameters(index, page, reference_lookup)
        for index, page in enumerate(composition.pages)
    ]
    return {
        "productId": product.id,
        "productTemplateId": product.template_id,
        "coverColor": composition.cover_color.value,
        "pageColor": composition.page_color.value,
        "pages": pages,
    }


def _page_parameters(index: int, page: PageComposition, reference_lookup: ReferenceLookup) -> dict:
    entry: dict = {"layoutId": page.layout_id}
    if page.text:
        entry["text"] = page.text

    asset = page.asset
    if asset is None:
        return entry

    url = reference_lookup(asset.identifier)
    if not url:
        raise MissingTemplateInfoError(
            f"Asset {asset.identifier} on page {index} has not been uploaded"
        )
    placement = page.placement
    asset_entry = {
        "url": url,
        "width": asset.size.width,
        "height": asset.size.height,
        "transform": list(placement.transform.as_tuple()),
    }
    if placement.container_size is not None:
        asset_entry["containerSize"] = placement.container_size.to_dict()
    entry["asset"] = asset_entry
    return entry
