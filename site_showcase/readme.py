"""Generated README sections bounded by marker comments."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Tuple

from .exceptions import MergeMarkerError

logger = logging.getLogger("site_showcase")

COMPONENTS_SECTION = "components"
COMPONENTS_TITLE = "# Components"


def section_markers(section: str) -> Tuple[str, str]:
    return (
        f"<!-- START_SECTION:{section} -->",
        f"<!-- END_SECTION:{section} -->",
    )


def merge_section(document: str, section: str, body: str) -> str:
    """Replace the body of ``section`` in ``document`` or append the section.

    Text outside the marker pair is preserved byte for byte and merging the
    same body twice gives the same document as merging it once. Malformed
    markers raise ``MergeMarkerError`` carrying the untouched document.
    """
    start_marker, end_marker = section_markers(section)
    body = body.strip("\n")
    starts = document.count(start_marker)
    ends = document.count(end_marker)

    if starts == 0 and ends == 0:
        prefix = document
        if prefix and not prefix.endswith("\n"):
            prefix += "\n"
        return f"{prefix}{start_marker}\n{body}\n{end_marker}\n"

    if starts != 1 or ends != 1:
        raise MergeMarkerError(
            f"Expected one {start_marker!r} and one {end_marker!r}, "
            f"found {starts} and {ends}",
            document,
        )
    start = document.index(start_marker) + len(start_marker)
    end = document.index(end_marker)
    if end < start:
        raise MergeMarkerError(f"{end_marker!r} appears before {start_marker!r}", document)
    return f"{document[:start]}\n{body}\n{document[end:]}"


def render_components_section(screenshots: Iterable[Path], project_dir: Path) -> str:
    """Build the Markdown listing one image block per component screenshot."""
    parts = [COMPONENTS_TITLE]
    for path in sorted(screenshots, key=lambda p: p.stem):
        relative = Path(os.path.relpath(path, project_dir)).as_posix()
        parts.append(f"\n## {path.stem}\n<p>\n\t<img src=\"{relative}\"/>\n</p>\n")
    return "".join(parts)


def update_readme(
    project_dir: Path,
    readme_name: str,
    body: str,
    section: str = COMPONENTS_SECTION,
) -> bool:
    """Merge ``body`` into the README; returns True when the file changed."""
    readme_path = project_dir / readme_name
    if readme_path.exists():
        with readme_path.open(encoding="utf-8", newline="") as handle:
            current = handle.read()
    else:
        logger.info("%s does not exist; creating it", readme_path)
        current = ""
    updated = merge_section(current, section, body)
    if updated == current and readme_path.exists():
        logger.info("%s is already up to date", readme_path)
        return False
    with readme_path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(updated)
    logger.info("Updated %s section in %s", section, readme_path)
    return True
