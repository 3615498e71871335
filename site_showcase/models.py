"""Data models used throughout the showcase pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class PageRecording:
    """Record a scroll-through video of one route."""

    route: str
    sequence_index: int

    def describe(self) -> str:
        return f"route {self.route} (#{self.sequence_index})"


@dataclass(frozen=True)
class ComponentShot:
    """Capture a still image of one element on a page."""

    route: str
    selector: str
    name: str
    output_dir: Path

    def describe(self) -> str:
        return f"component {self.name} ({self.selector} on {self.route})"


CaptureTask = Union[PageRecording, ComponentShot]


@dataclass(frozen=True)
class Segment:
    """A recorded video file tagged with its position in the final video."""

    sequence_index: int
    path: Path


@dataclass(frozen=True)
class ComponentSpec:
    """Component entry loaded from ``components.json``."""

    name: str
    page: str
    selector: str


class TaskStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TaskResult:
    """Terminal outcome of a capture task."""

    task: CaptureTask
    status: TaskStatus
    attempts: int
    output: Union[Segment, Path, None] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.SUCCEEDED


@dataclass
class RunReport:
    """Summary of a pipeline stage, used for the end-of-run log."""

    results: List[TaskResult] = field(default_factory=list)
    video_path: Optional[Path] = None
    screenshots: List[Path] = field(default_factory=list)

    @property
    def skipped(self) -> List[str]:
        return [
            f"{result.task.describe()}: {result.error}"
            for result in self.results
            if not result.ok
        ]

    def extend(self, other: "RunReport") -> None:
        self.results.extend(other.results)
        self.screenshots.extend(other.screenshots)
        if other.video_path is not None:
            self.video_path = other.video_path
