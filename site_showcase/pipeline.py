"""High-level orchestration for recording pages and capturing components."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from playwright.async_api import Playwright, async_playwright

from .components import load_components
from .config import ShowcaseConfig
from .discovery import discover_routes, wait_for_site
from .exceptions import AssemblyError
from .images import list_screenshots
from .models import ComponentShot, ComponentSpec, PageRecording, RunReport
from .pool import WorkerFactory, run_tasks, split_results
from .readme import render_components_section, update_readme
from .utils import normalize_route
from .video import assemble_segments
from .worker import BrowserWorker

logger = logging.getLogger("site_showcase")


def build_recording_tasks(routes: Sequence[str]) -> List[PageRecording]:
    """Number routes in discovery order; the index is fixed from here on."""
    return [
        PageRecording(route=route, sequence_index=index)
        for index, route in enumerate(routes)
    ]


def build_component_tasks(
    components: Iterable[ComponentSpec],
    output_dir: Path,
) -> List[ComponentShot]:
    return [
        ComponentShot(
            route=normalize_route(spec.page),
            selector=spec.selector,
            name=spec.name,
            output_dir=output_dir,
        )
        for spec in components
    ]


def _browser_workers(playwright: Playwright, config: ShowcaseConfig) -> WorkerFactory:
    def factory(worker_id: int) -> BrowserWorker:
        return BrowserWorker(worker_id, playwright, config)

    return factory


def _log_failures(report: RunReport) -> None:
    for description in report.skipped:
        logger.warning("Skipped %s", description)


async def create_recording(
    playwright: Playwright,
    config: ShowcaseConfig,
    routes: Optional[Sequence[str]] = None,
    worker_factory: Optional[WorkerFactory] = None,
) -> RunReport:
    """Record every route and merge the segments into the showcase video."""
    if routes is None:
        routes = await discover_routes(playwright, config)
    tasks = build_recording_tasks(routes)

    segment_dir = config.segment_dir
    if segment_dir.exists():
        logger.warning("Removing stale segment directory %s", segment_dir)
        shutil.rmtree(segment_dir)
    segment_dir.mkdir(parents=True)

    factory = worker_factory or _browser_workers(playwright, config)
    results = await run_tasks(config.pool, factory, tasks)
    report = RunReport(results=results)
    succeeded, failed = split_results(results)
    logger.info("Recorded %d/%d page(s)", len(succeeded), len(tasks))
    _log_failures(report)
    if not succeeded:
        raise AssemblyError("No page recordings succeeded; nothing to assemble")

    report.video_path = assemble_segments(segment_dir, config.video_path, config.ffmpeg_bin)
    logger.info("Showcase video written to %s", report.video_path)
    return report


async def screenshot_components(
    playwright: Playwright,
    config: ShowcaseConfig,
    components: Sequence[ComponentSpec],
    worker_factory: Optional[WorkerFactory] = None,
) -> RunReport:
    """Capture one screenshot per configured component."""
    tasks = build_component_tasks(components, config.screenshot_dir)
    if not tasks:
        logger.info("No components configured; skipping screenshots")
        return RunReport()
    factory = worker_factory or _browser_workers(playwright, config)
    results = await run_tasks(config.pool, factory, tasks)
    report = RunReport(results=results)
    report.screenshots = [result.output for result in results if result.ok]
    logger.info("Captured %d/%d component(s)", len(report.screenshots), len(tasks))
    _log_failures(report)
    return report


def add_screenshots_to_readme(
    config: ShowcaseConfig, screenshots: Optional[Sequence[Path]] = None
) -> bool:
    """Regenerate the components section of the README.

    With ``screenshots`` given, only those images are listed and any other PNG
    left in the screenshot directory by an earlier run is reported as stale.
    Otherwise every valid screenshot on disk is used.
    """
    on_disk = list_screenshots(config.screenshot_dir)
    if screenshots is None:
        screenshots = on_disk
    else:
        current = {Path(path).resolve() for path in screenshots}
        for path in on_disk:
            if path.resolve() not in current:
                logger.warning("Leaving stale screenshot %s out of the README", path)
        screenshots = list(screenshots)
    body = render_components_section(screenshots, config.project_dir)
    return update_readme(config.project_dir, config.readme_name, body)


async def run_showcase(
    config: ShowcaseConfig,
    record: bool = True,
    screenshots: bool = True,
    readme: bool = True,
    components: Optional[Sequence[ComponentSpec]] = None,
) -> RunReport:
    """Run the requested stages against the site served at ``config.base_url``."""
    report = RunReport()
    if screenshots and components is None:
        components = load_components(config.components_path)

    if record or screenshots:
        await asyncio.to_thread(
            wait_for_site,
            config.base_url,
            config.discovery_attempts,
            config.discovery_backoff,
        )
        async with async_playwright() as playwright:
            if record:
                report.extend(await create_recording(playwright, config))
            if screenshots:
                report.extend(await screenshot_components(playwright, config, components or []))

    if readme:
        add_screenshots_to_readme(config, report.screenshots if screenshots else None)
    return report
