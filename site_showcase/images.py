"""Screenshot validation and discovery utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from filetype import guess

logger = logging.getLogger("site_showcase")

SCREENSHOT_EXTENSION = "png"
MIN_IMAGE_BYTES = 64


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def is_valid_screenshot(path: Path) -> bool:
    """Return True when ``path`` holds a non-trivial PNG image."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.warning("Failed to read screenshot %s: %s", path, exc)
        return False
    if len(data) < MIN_IMAGE_BYTES:
        logger.warning("Screenshot %s is too small (%d bytes)", path, len(data))
        return False
    return detect_image_format(data) == SCREENSHOT_EXTENSION


def list_screenshots(directory: Path) -> List[Path]:
    """Return valid screenshots in ``directory`` sorted by file name."""
    if not directory.is_dir():
        return []
    shots: List[Path] = []
    for path in sorted(directory.glob(f"*.{SCREENSHOT_EXTENSION}")):
        if not path.is_file():
            continue
        if not is_valid_screenshot(path):
            logger.warning("Skipping %s: not a PNG image", path)
            continue
        shots.append(path)
    return shots
