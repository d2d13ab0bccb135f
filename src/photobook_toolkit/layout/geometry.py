"""
Module: layout.geometry

Purpose:
    Pure functions computing the affine placement of an asset inside a
    layout container. A placement must always "cover" its container:
    the transformed asset leaves no gap, whatever the scale, rotation
    or translation the user chose.

Key Functions:
    - fit_to_container(): Fresh cover-fit, no rotation or translation
    - rescale_for_new_container(): Keep the crop when the container resizes
    - adjust_for_asset_change(): Restore coverage keeping rotation/offset
    - scale_to_fill(): Minimum covering scale at a rotation angle
    - bounding_size(): Axis-aligned size of a transformed asset

Conventions:
    Transforms apply about the container centre. (tx, ty) is the offset
    of the asset centre from the container centre, in container units.

Rescale policy:
    rescale_for_new_container() uses ONE uniform ratio taken from the
    dominant axis of the new container (width ratio when the container
    is at least as wide as tall, height ratio otherwise). x and y are
    never scaled independently, so the asset keeps its aspect ratio;
    any shortfall on the other axis is corrected by
    adjust_for_asset_change(), which callers apply afterwards.

Precision:
    Covering scales are rounded up, so for an unrotated asset
    ``bounding_size()`` is never smaller than the container, not even by
    one ulp. Rotated placements go through cos/sin and are exact only to
    within normal float rounding.

Dependencies:
    - math (std)
    - core.models.geometry: Size, Transform

Used By:
    - layout.models.AssetPlacement
    - layout.store.CompositionStore
"""

from __future__ import annotations

import math

from ..core.models.geometry import Size, Transform


def fit_to_container(asset_size: Size, container_size: Size) -> Transform:
    """
    Uniform scale that makes the asset exactly cover the container.

    Any previous rotation or translation is discarded. Degenerate sizes
    (zero, negative or non-finite dimensions) give the identity.

    Args:
        asset_size: Asset pixel dimensions
        container_size: Container dimensions

    Returns:
        Scale-only transform

    Example:
        >>> fit_to_container(Size(400, 200), Size(100, 100)).scale
        0.5
    """
    if asset_size.is_degenerate or container_size.is_degenerate:
        return Transform.identity()

    scale = scale_to_fill(container_size, asset_size, 0.0)
    if not math.isfinite(scale) or scale <= 0:
        return Transform.identity()
    return Transform.scaling(scale)


def rescale_for_new_container(
    old_container_size: Size | None,
    new_container_size: Size,
    transform: Transform,
) -> Transform:
    """
    Scale an existing transform by the container's resize ratio.

    Uses the width ratio when the new container is landscape or square
    (and the old width is usable), else the height ratio. Translation is
    scaled too, so the crop keeps its relative position.

    Args:
        old_container_size: Container size the transform was made for
        new_container_size: Container size to adapt to
        transform: Current transform

    Returns:
        Rescaled transform, or identity when no finite ratio exists
    """
    if old_container_size is None or new_container_size.is_degenerate:
        return Transform.identity()

    old_w, old_h = old_container_size.width, old_container_size.height
    new_w, new_h = new_container_size.width, new_container_size.height

    if math.isfinite(old_w) and old_w > 0 and new_w >= new_h:
        ratio = new_w / old_w
    elif math.isfinite(old_h) and old_h > 0:
        ratio = new_h / old_h
    else:
        return Transform.identity()

    if not math.isfinite(ratio) or ratio <= 0:
        return Transform.identity()

    rescaled = transform.scaled_by(ratio)
    if not rescaled.is_finite:
        return Transform.identity()
    return rescaled


def adjust_for_asset_change(
    transform: Transform,
    asset_size: Size,
    container_size: Size,
) -> Transform:
    """
    Re-derive scale and translation so the asset covers the container.

    Rotation is preserved. Scale is raised (never lowered) to the minimum
    covering scale at that rotation; translation is clamped so that no
    edge of the container is exposed.

    Args:
        transform: Current transform
        asset_size: Current asset pixel dimensions
        container_size: Container dimensions

    Returns:
        Covering transform, or identity for degenerate input
    """
    if asset_size.is_degenerate or container_size.is_degenerate or not transform.is_finite:
        return Transform.identity()

    angle = transform.angle
    scale = transform.scale
    min_scale = scale_to_fill(container_size, asset_size, angle)
    if scale < min_scale:
        scale = min_scale

    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    span_w, span_h = _rotated_span(container_size, cos_a, sin_a)

    # Translation expressed along the asset's own axes
    u = transform.tx * cos_a + transform.ty * sin_a
    v = -transform.tx * sin_a + transform.ty * cos_a

    slack_u = max(0.0, (asset_size.width * scale - span_w) / 2)
    slack_v = max(0.0, (asset_size.height * scale - span_h) / 2)
    u = min(max(u, -slack_u), slack_u)
    v = min(max(v, -slack_v), slack_v)

    tx = u * cos_a - v * sin_a
    ty = u * sin_a + v * cos_a

    if angle == 0.0:
        adjusted = Transform(a=scale, d=scale, tx=tx, ty=ty)
    else:
        adjusted = Transform.from_components(scale, angle, tx, ty)
    if not adjusted.is_finite:
        return Transform.identity()
    return adjusted


def scale_to_fill(container_size: Size, asset_size: Size, angle: float) -> float:
    """
    Minimum uniform scale for an asset rotated by ``angle`` to cover
    the container.

    The container is projected onto the asset's axes; the asset must be
    at least as long as that projection on both axes.
    """
    span_w, span_h = _rotated_span(container_size, math.cos(angle), math.sin(angle))
    scale = max(span_w / asset_size.width, span_h / asset_size.height)
    # Division can round down by an ulp; step up until the product covers
    while math.isfinite(scale) and (
        asset_size.width * scale < span_w or asset_size.height * scale < span_h
    ):
        scale = math.nextafter(scale, math.inf)
    return scale


def bounding_size(transform: Transform, asset_size: Size) -> Size:
    """Axis-aligned bounding box of the transformed asset."""
    return Size(
        asset_size.width * abs(transform.a) + asset_size.height * abs(transform.c),
        asset_size.width * abs(transform.b) + asset_size.height * abs(transform.d),
    )


def _rotated_span(container_size: Size, cos_a: float, sin_a: float) -> tuple[float, float]:
    """Extent of the container measured along axes rotated by the angle."""
    w, h = container_size.width, container_size.height
    return (
        w * abs(cos_a) + h * abs(sin_a),
        w * abs(sin_a) + h * abs(cos_a),
    )
