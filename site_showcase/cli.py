"""Command-line entry point for the showcase generator."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import (
    DEFAULT_BASE_URL,
    DEFAULT_VIDEO_NAME,
    LaunchConfig,
    ShowcaseConfig,
    WorkerPoolConfig,
)
from .exceptions import ShowcaseError
from .pipeline import run_showcase

logger = logging.getLogger("site_showcase.cli")

STAGES = {
    "record": (True, False, False),
    "screenshots": (False, True, False),
    "readme": (False, False, True),
    "all": (True, True, True),
}


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return ("all",)
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return ("all", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project-dir",
        default=".",
        type=Path,
        help="Project containing components.json and the README to update",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help="Address of the running site server",
    )
    parser.add_argument(
        "--static",
        action="store_true",
        help="Treat the site as a static export and append .html to routes",
    )
    parser.add_argument(
        "--chrome-path",
        default=None,
        help="Chromium executable used for every worker (default: Playwright's bundled build)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=3,
        help="Maximum number of browser workers running at once",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Per-task timeout in seconds",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=2,
        help="How many times a transiently failing task is retried",
    )
    parser.add_argument(
        "--readme",
        default="README.md",
        help="README file name inside the project directory",
    )
    parser.add_argument(
        "--video-name",
        default=DEFAULT_VIDEO_NAME,
        help="File name of the merged showcase video",
    )
    parser.add_argument(
        "--ffmpeg",
        default="ffmpeg",
        help="ffmpeg executable used to merge recorded segments",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Record a showcase video and component screenshots of a running site.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    helps = {
        "record": "Discover routes and record the showcase video",
        "screenshots": "Screenshot every component listed in components.json",
        "readme": "Regenerate the components section of the README",
        "all": "Run every stage",
    }
    for name, help_text in helps.items():
        _add_common_arguments(subparsers.add_parser(name, help=help_text))

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ShowcaseConfig:
    return ShowcaseConfig(
        project_dir=Path(args.project_dir).resolve(),
        base_url=args.base_url,
        is_static=args.static,
        readme_name=args.readme,
        video_name=args.video_name,
        ffmpeg_bin=args.ffmpeg,
        launch=LaunchConfig(executable_path=args.chrome_path),
        pool=WorkerPoolConfig(
            max_concurrency=args.concurrency,
            per_task_timeout=args.timeout,
            retry_limit=args.retries,
        ),
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    record, screenshots, readme = STAGES[args.command]
    overall_start = time.perf_counter()
    try:
        report = asyncio.run(
            run_showcase(config, record=record, screenshots=screenshots, readme=readme)
        )
    except ShowcaseError as exc:
        logger.error("%s failed: %s", type(exc).__name__, exc)
        return 1
    total_elapsed = time.perf_counter() - overall_start

    skipped = report.skipped
    logger.info(
        "Finished in %.2fs (%d task(s), %d skipped)",
        total_elapsed,
        len(report.results),
        len(skipped),
    )
    for description in skipped:
        logger.info("Skipped %s", description)
    if report.video_path:
        logger.info("Video: %s", report.video_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
