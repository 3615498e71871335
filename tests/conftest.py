"""Shared fixtures for the showcase test suite."""

import pytest

from fakes import PNG_BYTES
from site_showcase.config import ShowcaseConfig, WorkerPoolConfig


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def showcase_config(tmp_path):
    return ShowcaseConfig(
        project_dir=tmp_path,
        pool=WorkerPoolConfig(max_concurrency=2, per_task_timeout=5.0, retry_limit=1),
    )
