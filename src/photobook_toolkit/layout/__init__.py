"""
Module: layout

Purpose:
    Photobook composition: where each photo sits on each page.

Key Functions:
    - fit_to_container(): Cover-fit transform
    - rescale_for_new_container(): Keep crop on container resize
    - adjust_for_asset_change(): Restore coverage

Key Classes:
    - AssetPlacement, PageComposition, Composition: Composition model
    - CompositionStore: Owner of the live composition

Dependencies:
    - math (std)
    - photobook_toolkit.core.models

Used By:
    - photobook_toolkit.order
    - UI layer (external)
"""

from .geometry import (
    adjust_for_asset_change,
    bounding_size,
    fit_to_container,
    rescale_for_new_container,
    scale_to_fill,
)
from .models import AssetPlacement, Composition, PageComposition
from .store import CompositionStore

__all__ = [
    # Geometry
    "fit_to_container",
    "rescale_for_new_container",
    "adjust_for_asset_change",
    "scale_to_fill",
    "bounding_size",
    # Models
    "AssetPlacement",
    "PageComposition",
    "Composition",
    # Store
    "CompositionStore",
]
