"""Pillow primitives: resize sources, build the canvas, composite and encode."""

from __future__ import annotations

import io
import logging
from typing import Any

from PIL import Image, ImageColor

from collage.errors import CompositorError, ValidationError
from collage.layout import round_px, scaled_width
from collage.models import CompositionPlan, ResizedItem

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def parse_background(background: Any) -> tuple[int, int, int, int]:
    """Turn a caller color into an RGBA tuple.

    Accepts Pillow color strings (names, ``#rgb``, ``#rrggbb``, ``#rrggbbaa``,
    ``rgb()``/``hsl()``), ``"transparent"``, or ``{"r", "g", "b", "alpha"}``
    with ``alpha`` between 0 and 1.
    """
    if background is None:
        return TRANSPARENT
    if isinstance(background, dict):
        try:
            channels = [int(background.get(key, 0)) for key in ("r", "g", "b")]
            alpha = float(background.get("alpha", 1))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid background color: {background!r}") from exc
        if not all(0 <= c <= 255 for c in channels) or not 0 <= alpha <= 1:
            raise ValidationError(f"Invalid background color: {background!r}")
        return (*channels, round_px(alpha * 255))
    if not isinstance(background, str):
        raise ValidationError(f"Invalid background color: {background!r}")
    if background.strip().lower() == "transparent":
        return TRANSPARENT
    try:
        rgba = ImageColor.getrgb(background.strip())
    except ValueError as exc:
        raise ValidationError(f"Invalid background color: {background!r}") from exc
    if len(rgba) == 3:
        return (*rgba, 255)
    return tuple(rgba)


def resize_to_height(image: Image.Image, target_height: int) -> ResizedItem:
    """Scale to ``target_height`` keeping the aspect ratio."""
    width = scaled_width(image.width, image.height, target_height)
    if (width, target_height) != image.size:
        image = image.resize((width, target_height), Image.LANCZOS)
    return ResizedItem(width=width, height=target_height, raster=image)


def resize_and_crop(image: Image.Image, width: int, height: int) -> ResizedItem:
    """Resize an image to exactly width x height, center-cropping if needed."""
    width = max(1, width)
    height = max(1, height)
    src_w, src_h = image.size
    target_ratio = width / height
    src_ratio = src_w / src_h

    if src_ratio > target_ratio:
        new_h = height
        new_w = max(width, round_px(src_w * (height / src_h)))
    else:
        new_w = width
        new_h = max(height, round_px(src_h * (width / src_w)))

    resized = image.resize((new_w, new_h), Image.LANCZOS)

    left = (new_w - width) // 2
    top = (new_h - height) // 2
    cropped = resized.crop((left, top, left + width, top + height))

    return ResizedItem(width=width, height=height, raster=cropped)


def _paste(canvas: Image.Image, layer: Image.Image, left: int, top: int) -> None:
    # alpha_composite rejects negative destinations, so shift into the source box.
    src_x = max(0, -left)
    src_y = max(0, -top)
    dest_x = max(0, left)
    dest_y = max(0, top)
    visible_w = min(layer.width - src_x, canvas.width - dest_x)
    visible_h = min(layer.height - src_y, canvas.height - dest_y)
    if visible_w <= 0 or visible_h <= 0:
        return
    if layer.mode != "RGBA":
        layer = layer.convert("RGBA")
    canvas.alpha_composite(
        layer,
        dest=(dest_x, dest_y),
        source=(src_x, src_y, src_x + visible_w, src_y + visible_h),
    )


def compose(plan: CompositionPlan) -> Image.Image:
    """Draw every placement onto a fresh canvas, later layers on top."""
    canvas = Image.new(
        "RGBA",
        (max(1, plan.canvas.width), max(1, plan.canvas.height)),
        parse_background(plan.canvas.background),
    )
    for placement in plan.placements:
        _paste(canvas, placement.raster, placement.left, placement.top)
    return canvas


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    try:
        image.save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        raise CompositorError(f"PNG encoding failed: {exc}") from exc
    return buf.getvalue()


def render_png(plan: CompositionPlan) -> bytes:
    canvas = compose(plan)
    logger.debug(
        "Composited %d layers onto %dx%d canvas",
        len(plan.placements), canvas.width, canvas.height,
    )
    return encode_png(canvas)
