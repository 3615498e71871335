"""Assembly of recorded segments into the showcase video."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List

from .exceptions import AssemblyError
from .models import Segment

logger = logging.getLogger("site_showcase")

SEGMENT_PATTERN = re.compile(r"^segment-(?P<index>\d+)-w(?P<worker>\d+)\.webm$")
CONCAT_LIST_NAME = "concat.txt"


def segment_filename(sequence_index: int, worker_id: int) -> str:
    return f"segment-{sequence_index:05d}-w{worker_id}.webm"


def list_segments(segment_dir: Path) -> List[Segment]:
    """Return the segments in ``segment_dir`` ordered by sequence index.

    Directory listing order is ignored. If a retried task left more than one
    file for the same index, the most recently written one wins.
    """
    by_index: Dict[int, Path] = {}
    for path in segment_dir.iterdir():
        match = SEGMENT_PATTERN.match(path.name)
        if not match or not path.is_file():
            continue
        index = int(match.group("index"))
        previous = by_index.get(index)
        if previous is not None:
            logger.warning("Duplicate segments for index %d: %s, %s", index, previous, path)
            if previous.stat().st_mtime >= path.stat().st_mtime:
                continue
        by_index[index] = path
    return [Segment(index, by_index[index]) for index in sorted(by_index)]


def _concat_line(path: Path) -> str:
    escaped = path.resolve().as_posix().replace("'", "'\\''")
    return f"file '{escaped}'\n"


def assemble_segments(
    segment_dir: Path,
    output_path: Path,
    ffmpeg_bin: str = "ffmpeg",
) -> Path:
    """Concatenate every segment into ``output_path`` without re-encoding.

    The segment directory is removed only after a successful merge; on any
    failure it is left in place for inspection.
    """
    if not segment_dir.is_dir():
        raise AssemblyError(f"Segment directory {segment_dir} does not exist")
    segments = list_segments(segment_dir)
    if not segments:
        raise AssemblyError(f"No segments found in {segment_dir}")

    ffmpeg = shutil.which(ffmpeg_bin)
    if not ffmpeg:
        raise AssemblyError(f"ffmpeg executable {ffmpeg_bin!r} not found")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    concat_list = segment_dir / CONCAT_LIST_NAME
    with concat_list.open("w", encoding="utf-8") as handle:
        for segment in segments:
            handle.write(_concat_line(segment.path))

    logger.info(
        "Merging %d segment(s) [%s] into %s",
        len(segments),
        ", ".join(str(segment.sequence_index) for segment in segments),
        output_path,
    )
    cmd = [
        ffmpeg,
        "-y",
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(concat_list),
        "-c",
        "copy",
        str(output_path),
    ]
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise AssemblyError(f"Could not run ffmpeg: {exc}") from exc
    if completed.returncode != 0:
        tail = (completed.stderr or completed.stdout or "")[-1200:]
        raise AssemblyError(f"ffmpeg exited with {completed.returncode}: {tail}")
    if not output_path.exists():
        raise AssemblyError(f"ffmpeg reported success but {output_path} is missing")

    shutil.rmtree(segment_dir)
    logger.info("Removed segment directory %s", segment_dir)
    return output_path
