"""Merge pipeline: resolve sources, resize, lay out, composite, encode."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

from PIL import Image

from collage.config import Settings
from collage.layout import plan_layout, resolve_target_height, round_px
from collage.models import (
    CompositionPlan,
    ImageDescriptor,
    LayoutMode,
    MergeRequest,
    MergeResult,
    ResizedItem,
)
from collage.render import render_png, resize_and_crop, resize_to_height
from collage.sources import SourceResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _parallel_map(fn: Callable[[T], R], items: list[T], max_workers: int) -> list[R]:
    if len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as pool:
        return list(pool.map(fn, items))


def _free_size(descriptor: ImageDescriptor, image: Image.Image) -> tuple[int, int]:
    width = descriptor.w if descriptor.w and descriptor.w > 0 else image.width
    height = descriptor.h if descriptor.h and descriptor.h > 0 else image.height
    return max(1, round_px(width)), max(1, round_px(height))


def plan_rows(request: MergeRequest, resolver: SourceResolver, max_workers: int) -> CompositionPlan:
    """Strip and grid modes: every source is required and shares one height."""
    config = request.config
    sources = resolver.load_many([d.src for d in request.images])
    target_height = resolve_target_height(config.target_height, [img.height for img in sources])

    resized: list[ResizedItem] = _parallel_map(
        lambda img: resize_to_height(img, target_height), sources, max_workers
    )
    return plan_layout(config, resized, target_height=target_height)


def plan_free(request: MergeRequest, resolver: SourceResolver, max_workers: int) -> CompositionPlan:
    """Free placement: descriptors without a src are skipped, the rest cover-resized."""
    kept = [d for d in request.images if d.src]
    skipped = len(request.images) - len(kept)
    if skipped:
        logger.info("Skipping %d image(s) without src", skipped)

    sources = resolver.load_many([d.src for d in kept])
    resized: list[ResizedItem] = _parallel_map(
        lambda pair: resize_and_crop(pair[1], *_free_size(pair[0], pair[1])),
        list(zip(kept, sources)),
        max_workers,
    )
    return plan_layout(request.config, resized, descriptors=kept)


def merge_images(
    request: MergeRequest,
    resolver: SourceResolver | None = None,
    settings: Settings | None = None,
) -> MergeResult:
    """Run a full merge and return the encoded PNG with its dimensions."""
    settings = settings or Settings()
    own_resolver = resolver is None
    if own_resolver:
        resolver = SourceResolver(settings)

    mode = request.config.mode
    logger.info("Merging %d image(s) in %s mode", len(request.images), mode.value)
    start_time = time.time()
    try:
        if mode is LayoutMode.FREE:
            plan = plan_free(request, resolver, settings.max_workers)
        else:
            plan = plan_rows(request, resolver, settings.max_workers)
        png = render_png(plan)
    finally:
        if own_resolver:
            resolver.close()

    elapsed = time.time() - start_time
    logger.info(
        "Merged %d layer(s) into %dx%d PNG (%d bytes) in %.2fs",
        len(plan.placements), plan.canvas.width, plan.canvas.height, len(png), elapsed,
    )
    return MergeResult(png=png, width=plan.canvas.width, height=plan.canvas.height)
