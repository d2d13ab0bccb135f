"""
Photobook Toolkit Core Package

Shared data models, the error taxonomy, serialization and validation.

1. **Immutable catalog and geometry values**
   - Layouts and products are frozen and shared by reference
   - Pages store a layout id, never a layout copy

2. **One error taxonomy**
   - Every error derives from `PhotobookError` (see errors.py)
   - Retryable and fatal upload failures are distinct classes

3. **Validated persistence**
   - Payloads are validated before any model object is built

`core.utils` is imported explicitly by callers; it depends on the
layout model and is not re-exported here.
"""

from .errors import PhotobookError
from .models import Size, Rect, Transform, Asset, LayoutTemplate, ProductTemplate, ProductColor

__all__ = [
    "PhotobookError",
    "Size",
    "Rect",
    "Transform",
    "Asset",
    "LayoutTemplate",
    "ProductTemplate",
    "ProductColor",
]
