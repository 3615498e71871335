"""Configuration objects and constants for the showcase pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

DEFAULT_BASE_URL = "http://127.0.0.1:3000"
DEFAULT_VIDEO_NAME = "showcase-video.webm"
SCREENSHOT_DIR = Path("showcase") / "screenshots"
VIDEO_DIR = Path("showcase") / "video"
SEGMENT_DIR = Path("tmpvid")
COMPONENTS_FILE = "components.json"
STATIC_SUFFIX = ".html"

# Chromium flags used for every worker process.
MINIMAL_ARGS: Tuple[str, ...] = (
    "--autoplay-policy=user-gesture-required",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-client-side-phishing-detection",
    "--disable-component-update",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
    "--disable-domain-reliability",
    "--disable-extensions",
    "--disable-features=AudioServiceOutOfProcess",
    "--disable-hang-monitor",
    "--disable-ipc-flooding-protection",
    "--disable-notifications",
    "--disable-offer-store-unmasked-wallet-cards",
    "--disable-popup-blocking",
    "--disable-print-preview",
    "--disable-prompt-on-repost",
    "--disable-renderer-backgrounding",
    "--disable-setuid-sandbox",
    "--disable-speech-api",
    "--disable-sync",
    "--hide-scrollbars",
    "--ignore-gpu-blocklist",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-first-run",
    "--no-pings",
    "--no-sandbox",
    "--no-zygote",
    "--password-store=basic",
    "--use-gl=swiftshader",
    "--use-mock-keychain",
)


@dataclass(frozen=True)
class LaunchConfig:
    """Settings passed unchanged to every isolated browser process."""

    executable_path: Optional[str] = None
    headless: bool = True
    args: Tuple[str, ...] = MINIMAL_ARGS
    viewport_width: int = 1920
    viewport_height: int = 1080
    ignore_https_errors: bool = True
    navigation_timeout: float = 30.0

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}


@dataclass(frozen=True)
class WorkerPoolConfig:
    """Limits applied by the worker pool for its whole lifetime."""

    max_concurrency: int = 3
    per_task_timeout: float = 60.0
    retry_limit: int = 2

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.per_task_timeout <= 0:
            raise ValueError("per_task_timeout must be positive")
        if self.retry_limit < 0:
            raise ValueError("retry_limit cannot be negative")


@dataclass(frozen=True)
class RecordingConfig:
    """Autoscroll pacing used while a page is being recorded."""

    step_distance: int = 100
    step_delay: float = 0.5


@dataclass(frozen=True)
class ShowcaseConfig:
    """Top-level settings for one showcase run."""

    project_dir: Path
    base_url: str = DEFAULT_BASE_URL
    is_static: bool = False
    readme_name: str = "README.md"
    video_name: str = DEFAULT_VIDEO_NAME
    ffmpeg_bin: str = "ffmpeg"
    selector_timeout: float = 30.0
    discovery_attempts: int = 5
    discovery_backoff: float = 1.0
    launch: LaunchConfig = field(default_factory=LaunchConfig)
    pool: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)

    @property
    def suffix(self) -> str:
        return STATIC_SUFFIX if self.is_static else ""

    @property
    def screenshot_dir(self) -> Path:
        return self.project_dir / SCREENSHOT_DIR

    @property
    def video_path(self) -> Path:
        return self.project_dir / VIDEO_DIR / self.video_name

    @property
    def segment_dir(self) -> Path:
        return self.project_dir / SEGMENT_DIR

    @property
    def components_path(self) -> Path:
        return self.project_dir / COMPONENTS_FILE
