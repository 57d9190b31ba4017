"""Layout compositor: turns resized items into a canvas size and placements.

Everything here works on plain sizes and offsets. Rasters travel through
untouched, so the functions are pure and deterministic for a given input.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from collage.errors import ValidationError
from collage.models import (
    Canvas,
    CompositionPlan,
    ImageDescriptor,
    LayoutConfig,
    LayoutMode,
    Placement,
    ResizedItem,
)


def round_px(value: float) -> int:
    """Round half up to a whole pixel, matching how offsets are rounded downstream."""
    return math.floor(value + 0.5)


def resolve_target_height(requested: int | None, intrinsic_heights: Sequence[int]) -> int:
    """Pick the common row height: the requested one, else the tallest source."""
    if requested is not None and requested > 0:
        return int(requested)
    target = max((h or 0 for h in intrinsic_heights), default=0)
    if target <= 0:
        raise ValidationError("Could not determine common height")
    return target


def scaled_width(width: int, height: int, target_height: int) -> int:
    """Width of a ``width``x``height`` source scaled to ``target_height``, aspect kept."""
    if height <= 0:
        raise ValidationError("Source image has no height")
    return max(1, round_px(width * target_height / height))


def split_rows(items: Sequence[ResizedItem], per_row: int) -> list[list[ResizedItem]]:
    if not per_row:
        return [list(items)]
    return [list(items[i:i + per_row]) for i in range(0, len(items), per_row)]


def row_width(row: Sequence[ResizedItem], gap: float) -> float:
    return sum(item.width for item in row) + gap * max(0, len(row) - 1)


def _canvas(width: float, height: float, background) -> Canvas:
    return Canvas(
        width=max(1, round_px(width)),
        height=max(1, round_px(height)),
        background=background,
    )


def layout_rows(
    items: Sequence[ResizedItem],
    target_height: int,
    config: LayoutConfig,
) -> CompositionPlan:
    """Lay items out left to right in rows of uniform height.

    With ``config.per_row`` unset every item goes in one strip; otherwise the
    items wrap into consecutive rows of at most ``per_row``. Rows are
    left-aligned and the canvas is as wide as the widest row.
    """
    gap = config.gap
    padding = config.padding
    rows = split_rows(items, config.per_row)

    widest = max((row_width(row, gap) for row in rows), default=0)
    total_w = padding * 2 + widest
    total_h = padding * 2 + len(rows) * target_height + gap * max(0, len(rows) - 1)

    placements: list[Placement] = []
    y = padding
    for row in rows:
        x = padding
        for item in row:
            placements.append(Placement(raster=item.raster, left=round_px(x), top=round_px(y)))
            x += item.width + gap
        y += target_height + gap

    return CompositionPlan(canvas=_canvas(total_w, total_h, config.background), placements=placements)


def layout_free(
    entries: Sequence[tuple[ImageDescriptor, ResizedItem]],
    config: LayoutConfig,
) -> CompositionPlan:
    """Place each item at its descriptor's x/y on a caller-sized canvas.

    No clamping: offsets outside the canvas are kept as given.
    """
    placements = [
        Placement(
            raster=item.raster,
            left=round_px(descriptor.x or 0),
            top=round_px(descriptor.y or 0),
        )
        for descriptor, item in entries
    ]
    canvas = _canvas(config.canvas_width, config.canvas_height, config.background)
    return CompositionPlan(canvas=canvas, placements=placements)


def plan_layout(
    config: LayoutConfig,
    items: Sequence[ResizedItem],
    target_height: int | None = None,
    descriptors: Sequence[ImageDescriptor] | None = None,
) -> CompositionPlan:
    """Dispatch to the layout for ``config.mode``."""
    if config.mode is LayoutMode.FREE:
        if descriptors is None or len(descriptors) != len(items):
            raise ValueError("free placement needs one descriptor per item")
        return layout_free(list(zip(descriptors, items)), config)
    if target_height is None:
        target_height = resolve_target_height(config.target_height, [i.height for i in items])
    return layout_rows(items, target_height, config)
