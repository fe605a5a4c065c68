"""
Tests for data models
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clipforge.core.errors import ExportError, ExportErrorKind, ExportResult
from clipforge.core.models import (
    Caption,
    ExportProgress,
    PlacedClip,
    Resolution,
    SourceClip,
    VideoMetadata,
)


class TestSourceClip:
    """Tests for SourceClip."""

    def test_filename_from_path(self):
        clip = SourceClip(id="a", file_path="/videos/holiday.mp4", duration=3.0)
        assert clip.filename == "holiday.mp4"

    def test_captions_sorted(self):
        clip = SourceClip(
            id="a", file_path="/a.mp4", duration=3.0,
            captions=[Caption(2, 3, "b"), Caption(0, 1, "a")],
        )
        assert [c.text for c in clip.captions] == ["a", "b"]

    def test_round_trip(self):
        clip = SourceClip(
            id="a", file_path="/a.mp4", duration=3.0,
            metadata=VideoMetadata(1920, 1080, "h264", 2048, framerate=29.97),
        )
        restored = SourceClip.from_dict(clip.to_dict())
        assert restored == clip


class TestPlacedClip:
    """Tests for PlacedClip."""

    def test_from_source(self):
        source = SourceClip(id="a", file_path="/a.mp4", duration=8.0)
        clip = PlacedClip.from_source(source, start_time=4.0, track=1)
        assert clip.source_id == "a"
        assert (clip.trim_start, clip.trim_end) == (0.0, 8.0)
        assert clip.end_time == 12.0

    def test_effective_duration(self):
        clip = PlacedClip(id="a", file_path="/a.mp4", duration=10, trim_start=2, trim_end=7)
        assert clip.effective_duration == 5
        assert clip.is_trimmed

    def test_copy_is_deep(self):
        clip = PlacedClip(
            id="a", file_path="/a.mp4", duration=10, trim_end=10,
            captions=[Caption(1, 2, "x")], metadata=VideoMetadata(640, 360),
        )
        clone = clip.copy(id="b")
        clone.captions[0].text = "y"
        clone.metadata.width = 1
        assert clip.captions[0].text == "x"
        assert clip.metadata.width == 640
        assert clone.id == "b"

    def test_from_dict_defaults_trim_end(self):
        clip = PlacedClip.from_dict({"id": "a", "file_path": "/a.mp4", "duration": 6})
        assert clip.trim_end == 6.0
        assert clip.source_id == "a"

    def test_round_trip_with_pip_placement(self):
        clip = PlacedClip(
            id="a", file_path="/a.mp4", duration=10, trim_end=10, track=1,
            position=(0.7, 0.1), scale=0.25,
        )
        assert PlacedClip.from_dict(clip.to_dict()) == clip


class TestResolution:
    """Tests for Resolution parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("720p", Resolution(1280, 720)),
        ("1080P", Resolution(1920, 1080)),
        ("4k", Resolution(3840, 2160)),
        ("480p", Resolution(854, 480)),
        ("640x360", Resolution(640, 360)),
        ({"width": 100, "height": 50}, Resolution(100, 50)),
        ("source", None),
        (None, None),
    ])
    def test_parse(self, value, expected):
        assert Resolution.parse(value) == expected

    @pytest.mark.parametrize("value", [
        "huge", "0x100", "12x",
        {"width": 0, "height": 720},
        {"width": 1280, "height": -2},
        720, 1.5, ["1280", "720"],
    ])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            Resolution.parse(value)

    def test_str(self):
        assert str(Resolution(1280, 720)) == "1280x720"


class TestExportResult:
    """Tests for ExportResult."""

    def test_ok(self):
        result = ExportResult.ok("/out.mp4", "single")
        assert result.to_dict() == {"success": True, "strategy": "single"}

    def test_failed(self):
        error = ExportError(ExportErrorKind.NON_ZERO_EXIT, "boom", ["line"])
        result = ExportResult.failed(error, "/out.mp4", "concat")
        assert not result.success
        assert result.stderr_tail == ["line"]
        assert result.to_dict()["error_kind"] == "non_zero_exit"
        assert not result.cancelled

    def test_cancelled(self):
        result = ExportResult.failed(ExportError(ExportErrorKind.CANCELLED, "Export cancelled"))
        assert result.cancelled

    def test_progress_to_dict(self):
        progress = ExportProgress(28, 83.45, 300.0)
        assert progress.to_dict()["percentage"] == 28
