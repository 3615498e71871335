"""Autoscroll pacing for page recordings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Tuple

from .config import RecordingConfig

logger = logging.getLogger("site_showcase")

_MEASURE_JS = "() => [document.body.scrollHeight, window.innerHeight]"
_SCROLL_HEIGHT_JS = "() => document.body.scrollHeight"
_SCROLL_BY_JS = "(distance) => window.scrollBy(0, distance)"


@dataclass(frozen=True)
class ScrollPlan:
    """Measured page geometry and the recording ceiling derived from it."""

    content_height: int
    viewport_height: int
    duration: float


def estimate_scroll_duration(
    content_height: float,
    viewport_height: float,
    step_distance: float,
    step_delay: float,
) -> float:
    """Seconds needed to scroll through the page, never less than one step."""
    if step_distance <= 0:
        raise ValueError("step_distance must be positive")
    scrollable = content_height - viewport_height
    return max(step_delay, scrollable / step_distance * step_delay)


async def measure_page(page: Any) -> Tuple[int, int]:
    content_height, viewport_height = await page.evaluate(_MEASURE_JS)
    return int(content_height), int(viewport_height)


async def plan_scroll(page: Any, config: RecordingConfig) -> ScrollPlan:
    content_height, viewport_height = await measure_page(page)
    duration = estimate_scroll_duration(
        content_height, viewport_height, config.step_distance, config.step_delay
    )
    logger.debug(
        "Page height %dpx, viewport %dpx -> %.1fs recording",
        content_height,
        viewport_height,
        duration,
    )
    return ScrollPlan(content_height, viewport_height, duration)


async def autoscroll(page: Any, step_distance: int, step_delay: float) -> int:
    """Scroll ``page`` by ``step_distance`` every ``step_delay`` seconds.

    The first tick only waits so the recording does not open on a half-drawn
    frame. Scrolling stops once the position reaches the content height, which
    is re-read on every tick for pages that grow while scrolling. Returns the
    final scroll position.
    """
    position = 0
    first_tick = True
    while True:
        await asyncio.sleep(step_delay)
        content_height = await page.evaluate(_SCROLL_HEIGHT_JS)
        if position >= content_height:
            return position
        if first_tick:
            first_tick = False
            continue
        await page.evaluate(_SCROLL_BY_JS, step_distance)
        position += step_distance
