"""Capture workers that drive one isolated browser process each."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from playwright.async_api import Browser, BrowserContext
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import LaunchConfig, ShowcaseConfig
from .exceptions import (
    CaptureError,
    NavigationTimeout,
    RecorderStartError,
    RenderSurfaceCrash,
    RenderSurfaceLaunchFailure,
    SelectorNotFound,
)
from .images import is_valid_screenshot
from .models import CaptureTask, ComponentShot, PageRecording, Segment
from .recording import autoscroll, plan_scroll
from .utils import build_page_url, slugify
from .video import segment_filename

logger = logging.getLogger("site_showcase")


async def launch_browser(playwright: Playwright, launch: LaunchConfig) -> Browser:
    """Start a Chromium process with the shared launch settings."""
    try:
        browser = await playwright.chromium.launch(
            headless=launch.headless,
            executable_path=launch.executable_path,
            args=list(launch.args),
        )
    except PlaywrightError as exc:
        raise RenderSurfaceLaunchFailure(
            f"Could not launch {launch.executable_path or 'bundled Chromium'}: {exc}"
        ) from exc
    logger.info("Browser %s is running", browser.version)
    return browser


async def _close_quietly(target: Union[Browser, BrowserContext]) -> None:
    try:
        await target.close()
    except PlaywrightError as exc:
        logger.debug("Ignoring error while closing %s: %s", target, exc)


class BrowserWorker:
    """Capture worker owning one Chromium process for its whole lifetime."""

    def __init__(self, worker_id: int, playwright: Playwright, config: ShowcaseConfig) -> None:
        self.worker_id = worker_id
        self._playwright = playwright
        self._config = config
        self._browser: Optional[Browser] = None

    async def start(self) -> None:
        self._browser = await launch_browser(self._playwright, self._config.launch)

    async def close(self) -> None:
        if self._browser is not None:
            await _close_quietly(self._browser)
            self._browser = None

    async def run(self, task: CaptureTask) -> Union[Segment, Path]:
        if isinstance(task, PageRecording):
            return await self.record_page(task)
        if isinstance(task, ComponentShot):
            return await self.capture_component(task)
        raise TypeError(f"Unsupported capture task: {task!r}")

    async def _ensure_browser(self) -> Browser:
        if self._browser is None or not self._browser.is_connected():
            if self._browser is not None:
                logger.warning("Worker %d lost its browser; relaunching", self.worker_id)
            self._browser = await launch_browser(self._playwright, self._config.launch)
        return self._browser

    @asynccontextmanager
    async def _render_surface(self, **options: Any) -> AsyncIterator[Any]:
        """Yield a page in a fresh browser context, mapping Playwright errors."""
        launch = self._config.launch
        browser = await self._ensure_browser()
        try:
            context = await browser.new_context(
                viewport=launch.viewport,
                ignore_https_errors=launch.ignore_https_errors,
                **options,
            )
        except PlaywrightError as exc:
            raise RenderSurfaceCrash(f"Could not open a browser context: {exc}") from exc
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(launch.navigation_timeout * 1000)
            yield page
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(str(exc)) from exc
        except PlaywrightError as exc:
            raise RenderSurfaceCrash(str(exc)) from exc
        finally:
            await _close_quietly(context)

    def _url_for(self, route: str) -> str:
        return build_page_url(self._config.base_url, route, self._config.suffix)

    async def record_page(self, task: PageRecording) -> Segment:
        """Record an autoscrolling pass over one route into a segment file."""
        url = self._url_for(task.route)
        recording = self._config.recording
        segment_dir = self._config.segment_dir
        raw_dir = segment_dir / f".raw-w{self.worker_id}"
        raw_dir.mkdir(parents=True, exist_ok=True)
        destination = segment_dir / segment_filename(task.sequence_index, self.worker_id)

        video = None
        async with self._render_surface(
            record_video_dir=str(raw_dir),
            record_video_size=self._config.launch.viewport,
        ) as page:
            logger.info("Worker %d recording %s", self.worker_id, url)
            await page.goto(url, wait_until="networkidle")
            video = page.video
            if video is None:
                raise RecorderStartError(f"No video recorder attached for {url}")
            plan = await plan_scroll(page, recording)
            # One extra step covers the initial no-op tick.
            ceiling = plan.duration + recording.step_delay
            try:
                await asyncio.wait_for(
                    autoscroll(page, recording.step_distance, recording.step_delay),
                    timeout=ceiling,
                )
            except asyncio.TimeoutError:
                logger.debug("Recording limit of %.1fs reached for %s", ceiling, url)

        partial = destination.with_name(destination.name + ".partial")
        try:
            await video.save_as(str(partial))
            await video.delete()
        except PlaywrightError as exc:
            raise RenderSurfaceCrash(f"Could not save recording of {url}: {exc}") from exc
        os.replace(partial, destination)
        logger.info("Saved segment %s", destination)
        return Segment(task.sequence_index, destination)

    async def capture_component(self, task: ComponentShot) -> Path:
        """Screenshot the element matching ``task.selector``."""
        url = self._url_for(task.route)
        destination = task.output_dir / f"{slugify(task.name, fallback='component')}.png"
        async with self._render_surface() as page:
            logger.info("Worker %d capturing %s on %s", self.worker_id, task.name, url)
            await page.goto(url, wait_until="networkidle")
            try:
                element = await page.wait_for_selector(
                    task.selector,
                    state="visible",
                    timeout=self._config.selector_timeout * 1000,
                )
            except PlaywrightTimeoutError as exc:
                raise SelectorNotFound(f"{task.selector} did not appear on {url}") from exc
            if element is None:
                raise SelectorNotFound(f"{task.selector} did not resolve on {url}")
            task.output_dir.mkdir(parents=True, exist_ok=True)
            await element.screenshot(path=str(destination))

        if not is_valid_screenshot(destination):
            raise CaptureError(f"Screenshot of {task.name} is not a valid PNG")
        logger.info("Saved screenshot %s", destination)
        return destination
