"""Showcase video and component screenshot generation for web sites."""

from .config import LaunchConfig, ShowcaseConfig, WorkerPoolConfig
from .pipeline import run_showcase

__all__ = ["LaunchConfig", "ShowcaseConfig", "WorkerPoolConfig", "run_showcase"]
