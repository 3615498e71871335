"""Unit tests for segment listing and video assembly."""

import os
import subprocess

import pytest

from site_showcase import video
from site_showcase.exceptions import AssemblyError
from site_showcase.video import assemble_segments, list_segments, segment_filename


def make_segments(directory, names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"webm")


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    """Replace ffmpeg with a recorder of the concat list it was given."""
    calls = []

    def fake_run(cmd, capture_output, text, check):
        concat_list = cmd[cmd.index("-i") + 1]
        with open(concat_list, encoding="utf-8") as handle:
            listed = handle.read().splitlines()
        calls.append({"cmd": cmd, "listed": listed})
        with open(cmd[-1], "wb") as handle:
            handle.write(b"merged")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(video.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(video.subprocess, "run", fake_run)
    return calls


class TestListSegments:
    """Tests for list_segments."""

    def test_orders_by_sequence_index(self, tmp_path):
        make_segments(
            tmp_path,
            [segment_filename(2, 1), segment_filename(0, 3), segment_filename(10, 2), segment_filename(1, 2)],
        )

        segments = list_segments(tmp_path)

        assert [s.sequence_index for s in segments] == [0, 1, 2, 10]

    def test_ignores_unrelated_files(self, tmp_path):
        make_segments(tmp_path, [segment_filename(0, 1), "concat.txt", "notes.webm", "x.partial"])
        (tmp_path / ".raw-w1").mkdir()

        segments = list_segments(tmp_path)

        assert [s.path.name for s in segments] == [segment_filename(0, 1)]

    def test_duplicate_index_keeps_newest(self, tmp_path):
        make_segments(tmp_path, [segment_filename(0, 1), segment_filename(0, 2)])
        older = tmp_path / segment_filename(0, 1)
        newer = tmp_path / segment_filename(0, 2)
        os.utime(older, (1_000, 1_000))
        os.utime(newer, (2_000, 2_000))

        segments = list_segments(tmp_path)

        assert len(segments) == 1
        assert segments[0].path == newer

    def test_filename_encodes_index_and_worker(self):
        assert segment_filename(3, 2) == "segment-00003-w2.webm"


class TestAssembleSegments:
    """Tests for assemble_segments."""

    def test_merges_in_index_order_and_cleans_up(self, tmp_path, fake_ffmpeg):
        segment_dir = tmp_path / "tmpvid"
        make_segments(segment_dir, [segment_filename(2, 1), segment_filename(0, 2), segment_filename(1, 3)])
        output = tmp_path / "showcase" / "video" / "showcase-video.webm"

        result = assemble_segments(segment_dir, output)

        assert result == output
        assert output.read_bytes() == b"merged"
        assert not segment_dir.exists()
        listed = fake_ffmpeg[0]["listed"]
        assert [line.split("segment-")[1][:5] for line in listed] == ["00000", "00001", "00002"]
        cmd = fake_ffmpeg[0]["cmd"]
        assert cmd[cmd.index("-c") + 1] == "copy"

    def test_missing_segments_skip_index(self, tmp_path, fake_ffmpeg):
        segment_dir = tmp_path / "tmpvid"
        make_segments(segment_dir, [segment_filename(3, 1), segment_filename(0, 1)])

        assemble_segments(segment_dir, tmp_path / "out.webm")

        listed = fake_ffmpeg[0]["listed"]
        assert len(listed) == 2
        assert "segment-00000" in listed[0]
        assert "segment-00003" in listed[1]

    def test_failure_preserves_segments(self, tmp_path, monkeypatch):
        segment_dir = tmp_path / "tmpvid"
        make_segments(segment_dir, [segment_filename(0, 1)])
        monkeypatch.setattr(video.shutil, "which", lambda name: "/usr/bin/ffmpeg")
        monkeypatch.setattr(
            video.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, "", "Invalid data"),
        )

        with pytest.raises(AssemblyError, match="Invalid data"):
            assemble_segments(segment_dir, tmp_path / "out.webm")

        assert (segment_dir / segment_filename(0, 1)).exists()

    def test_empty_directory_raises(self, tmp_path, fake_ffmpeg):
        segment_dir = tmp_path / "tmpvid"
        segment_dir.mkdir()

        with pytest.raises(AssemblyError):
            assemble_segments(segment_dir, tmp_path / "out.webm")

        assert segment_dir.exists()
        assert fake_ffmpeg == []

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(AssemblyError):
            assemble_segments(tmp_path / "nope", tmp_path / "out.webm")

    def test_missing_ffmpeg_raises(self, tmp_path, monkeypatch):
        segment_dir = tmp_path / "tmpvid"
        make_segments(segment_dir, [segment_filename(0, 1)])
        monkeypatch.setattr(video.shutil, "which", lambda name: None)

        with pytest.raises(AssemblyError, match="not found"):
            assemble_segments(segment_dir, tmp_path / "out.webm")

        assert segment_dir.exists()
