"""Data models for merge requests, layout plans and results."""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from collage.config import Settings
from collage.errors import ValidationError

DEFAULT_BACKGROUND = "#00000000"

# Descriptor keys that, holding a number, switch a request into absolute placement.
PLACEMENT_KEYS = ("x", "y", "w", "h")


class LayoutMode(str, Enum):
    STRIP = "strip"
    GRID = "grid"
    FREE = "free"


class OutputFormat(str, Enum):
    PNG = "png"
    JSON = "json"


def finite_number(value: Any) -> float | None:
    """Return ``value`` as a float if it is a real, finite number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def positive_int(value: Any) -> int | None:
    """Floor a positive finite number to an int; None for anything else."""
    number = finite_number(value)
    if number is None or number <= 0:
        return None
    return max(1, math.floor(number))


def non_negative(value: Any) -> float:
    number = finite_number(value)
    if number is None:
        return 0.0
    return max(0.0, number)


@dataclass(frozen=True)
class ImageDescriptor:
    """One caller-supplied image with its optional placement and size."""

    src: str | None
    x: float | None = None
    y: float | None = None
    w: float | None = None
    h: float | None = None

    @classmethod
    def from_dict(cls, item: Any) -> ImageDescriptor:
        if not isinstance(item, dict):
            return cls(src=None)
        src = item.get("src")
        if src is not None and (not isinstance(src, str) or not src.strip()):
            raise ValidationError("image src required")
        return cls(
            src=src,
            x=finite_number(item.get("x")),
            y=finite_number(item.get("y")),
            w=finite_number(item.get("w")),
            h=finite_number(item.get("h")),
        )


@dataclass(frozen=True)
class LayoutConfig:
    mode: LayoutMode = LayoutMode.STRIP
    target_height: int | None = None
    per_row: int = 0
    gap: float = 0.0
    padding: float = 0.0
    canvas_width: int = 600
    canvas_height: int = 400
    background: Any = DEFAULT_BACKGROUND


@dataclass(frozen=True)
class MergeRequest:
    images: list[ImageDescriptor]
    config: LayoutConfig
    output: OutputFormat = OutputFormat.PNG

    @classmethod
    def from_payload(cls, payload: Any, settings: Settings | None = None) -> MergeRequest:
        """Validate a decoded JSON body and build a request from it.

        The layout mode comes from an explicit ``mode`` field when present.
        Otherwise any descriptor with a numeric ``x``/``y``/``w``/``h`` selects free
        placement, a positive ``perRow`` selects the grid, and the default is a
        single strip.
        """
        settings = settings or Settings()
        if not isinstance(payload, dict):
            raise ValidationError("JSON body must be an object")

        raw_images = payload.get("images")
        if not isinstance(raw_images, list) or not raw_images:
            raise ValidationError("images[] required")
        images = [ImageDescriptor.from_dict(item) for item in raw_images]

        per_row = positive_int(payload.get("perRow")) or 0
        mode = _select_mode(payload.get("mode"), raw_images, per_row)
        if mode is LayoutMode.GRID and not per_row:
            raise ValidationError("grid mode requires a positive perRow")
        if mode is LayoutMode.STRIP:
            per_row = 0

        if mode is not LayoutMode.FREE and any(d.src is None for d in images):
            raise ValidationError("image src required")

        output = payload.get("output", OutputFormat.PNG.value)
        if isinstance(output, str):
            output = output.strip().lower()
        try:
            output = OutputFormat(output)
        except ValueError:
            raise ValidationError(f"Unknown output format: {output!r}") from None

        background = payload.get("background")
        if background is None:
            background = DEFAULT_BACKGROUND

        config = LayoutConfig(
            mode=mode,
            target_height=positive_int(payload.get("height")),
            per_row=per_row,
            gap=non_negative(payload.get("gap")),
            padding=non_negative(payload.get("padding")),
            canvas_width=positive_int(payload.get("width")) or settings.canvas_width,
            canvas_height=positive_int(payload.get("height")) or settings.canvas_height,
            background=background,
        )
        return cls(images=images, config=config, output=output)


def _select_mode(explicit: Any, raw_images: list, per_row: int) -> LayoutMode:
    if isinstance(explicit, str):
        explicit = explicit.strip().lower()
    if explicit is not None:
        try:
            return LayoutMode(explicit)
        except ValueError:
            raise ValidationError(f"Unknown layout mode: {explicit!r}") from None
    for item in raw_images:
        if isinstance(item, dict) and any(
            finite_number(item.get(key)) is not None for key in PLACEMENT_KEYS
        ):
            return LayoutMode.FREE
    if per_row:
        return LayoutMode.GRID
    return LayoutMode.STRIP


@dataclass
class ResizedItem:
    """A decoded source after resizing; ``raster`` is opaque to the layout."""

    width: int
    height: int
    raster: Any = None


@dataclass(frozen=True)
class Placement:
    raster: Any
    left: int
    top: int


@dataclass(frozen=True)
class Canvas:
    width: int
    height: int
    background: Any = DEFAULT_BACKGROUND


@dataclass
class CompositionPlan:
    canvas: Canvas
    placements: list[Placement] = field(default_factory=list)


@dataclass
class MergeResult:
    png: bytes
    width: int
    height: int

    @property
    def data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "dataUrl": self.data_url}
