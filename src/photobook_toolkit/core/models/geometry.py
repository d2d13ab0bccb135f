"""
Module: geometry

Purpose:
    Value types for sizes, rectangles and 2D affine transforms. These are
    the numbers the geometry engine works on and the numbers persisted for
    every asset placement.

Key Classes:
    - Size: width/height pair, with degenerate detection
    - Rect: origin + size, used for page-relative layout boxes
    - Transform: affine matrix (a, b, c, d, tx, ty)

Dependencies:
    - dataclasses (std)
    - math (std)

Used By:
    - core.models.catalog: LayoutBox rects
    - layout.geometry: fit / rescale / adjust
    - layout.models: AssetPlacement
    - core.utils.serialization
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Size:
    """
    Width and height in pixels (or points; units are the caller's).

    Example:
        >>> Size(300, 200).is_landscape
        True
        >>> Size(0, 200).is_degenerate
        True
    """

    width: float
    height: float

    @property
    def is_degenerate(self) -> bool:
        """True when either dimension is zero, negative, NaN or infinite."""
        return not (
            math.isfinite(self.width)
            and math.isfinite(self.height)
            and self.width > 0
            and self.height > 0
        )

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

    @property
    def aspect_ratio(self) -> float:
        """Width over height, 0.0 for degenerate sizes."""
        if self.is_degenerate:
            return 0.0
        return self.width / self.height

    def scaled(self, factor: float) -> Size:
        return Size(self.width * factor, self.height * factor)

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> Size:
        return cls(width=data["width"], height=data["height"])


@dataclass(frozen=True, slots=True)
class Rect:
    """
    Axis-aligned rectangle.

    Layout boxes use page-relative units, so x/y/width/height are
    normally within 0..1.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> Rect:
        return cls(
            x=data.get("x", 0.0),
            y=data.get("y", 0.0),
            width=data["width"],
            height=data["height"],
        )


@dataclass(frozen=True, slots=True)
class Transform:
    """
    2D affine transform (immutable).

    Maps a point as::

        x' = a*x + c*y + tx
        y' = b*x + d*y + ty

    Placements apply the transform about the container centre, so
    (tx, ty) is the offset of the asset centre from the container centre.

    Example:
        >>> t = Transform.scaling(2.0)
        >>> t.scale
        2.0
        >>> Transform.identity().is_identity
        True
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    # ─────────────────────────────────────────────────────────────────────────
    # Constructors
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def scaling(cls, scale: float) -> Transform:
        return cls(a=scale, d=scale)

    @classmethod
    def from_components(
        cls,
        scale: float,
        angle: float = 0.0,
        tx: float = 0.0,
        ty: float = 0.0,
    ) -> Transform:
        """Build from uniform scale, rotation angle (radians) and translation."""
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        return cls(
            a=scale * cos_a,
            b=scale * sin_a,
            c=-scale * sin_a,
            d=scale * cos_a,
            tx=tx,
            ty=ty,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def scale(self) -> float:
        """Uniform scale factor (length of the first column)."""
        return math.hypot(self.a, self.b)

    @property
    def angle(self) -> float:
        """Rotation in radians."""
        return math.atan2(self.b, self.a)

    @property
    def is_identity(self) -> bool:
        return self == Transform()

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.as_tuple())

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def scaled_by(self, factor: float) -> Transform:
        """Scale the whole transform, translation included."""
        return Transform(
            a=self.a * factor,
            b=self.b * factor,
            c=self.c * factor,
            d=self.d * factor,
            tx=self.tx * factor,
            ty=self.ty * factor,
        )

    def translated_to(self, tx: float, ty: float) -> Transform:
        return Transform(a=self.a, b=self.b, c=self.c, d=self.d, tx=tx, ty=ty)

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.tx, self.ty)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "a": self.a, "b": self.b, "c": self.c,
            "d": self.d, "tx": self.tx, "ty": self.ty,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Transform:
        return cls(
            a=data["a"], b=data["b"], c=data["c"],
            d=data["d"], tx=data["tx"], ty=data["ty"],
        )
