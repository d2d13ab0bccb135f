"""
Core Models Package

Value types and immutable catalog data shared by every component.

Catalog data (layouts, products) and geometry values are frozen
dataclasses: pages reference layouts by id and share them freely, and
transforms can be compared bit for bit after a persistence round trip.
Assets are an interface with registered variants; see assets.py.
"""

from .geometry import Size, Rect, Transform
from .catalog import Catalog, LayoutBox, LayoutTemplate, ProductColor, ProductTemplate
from .assets import Asset, FileAsset, URLAsset, URLAssetImage, asset_from_dict, register_asset_type

__all__ = [
    "Size",
    "Rect",
    "Transform",
    "Catalog",
    "LayoutBox",
    "LayoutTemplate",
    "ProductColor",
    "ProductTemplate",
    "Asset",
    "FileAsset",
    "URLAsset",
    "URLAssetImage",
    "asset_from_dict",
    "register_asset_type",
]
