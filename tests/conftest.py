"""
Pytest configuration and fixtures
"""

import os
import stat
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to path for all tests
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clipforge.core.errors import ExportError, ExportErrorKind
from clipforge.core.models import Caption, ExportProgress, SourceClip, VideoMetadata


FAKE_FFMPEG = '''#!{python}
import os
import sys
import time

mode = os.environ.get("FAKE_FFMPEG_MODE", "ok")
sys.stderr.write("ffmpeg version fake\\n")
sys.stderr.write("frame=  10 fps=0.0 time=00:00:05.00 bitrate=N/A speed=1x\\r")
sys.stderr.write("frame=  20 fps=0.0 time=00:00:10.00 bitrate=N/A speed=1x\\n")
sys.stderr.flush()

if mode == "fail":
    sys.stderr.write("input.mp4: Invalid data found when processing input\\n")
    sys.exit(1)
if mode == "nooutput":
    sys.exit(0)
if mode == "hang":
    time.sleep(30)

with open(sys.argv[-1], "w") as f:
    f.write("fake video")
'''


class FakeRunner:
    """Stands in for FFmpegRunner: records calls and writes the output file."""

    def __init__(self, fail_on=None, kind=ExportErrorKind.NON_ZERO_EXIT, watch_dir=None):
        self.fail_on = fail_on  # 1-based call number that fails
        self.kind = kind
        self.watch_dir = watch_dir
        self.calls = []
        self.files_seen = []

    def run(self, args, output_path, total_duration, progress_callback=None, cancel_event=None):
        self.calls.append((list(args), output_path, total_duration))
        if self.watch_dir is not None:
            self.files_seen.append(sorted(p.name for p in Path(self.watch_dir).iterdir()))
        if self.fail_on == len(self.calls):
            raise ExportError(self.kind, f"Export failed with code 1: boom", ["boom"])
        Path(output_path).write_text("video")
        if progress_callback:
            progress_callback(ExportProgress(100, total_duration, total_duration))


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def make_source():
    """Factory for source clips with probed metadata."""
    def _make(clip_id, duration=10.0, path=None, captions=None, width=1280, height=720):
        return SourceClip(
            id=clip_id,
            file_path=path or f"/media/{clip_id}.mp4",
            duration=duration,
            metadata=VideoMetadata(width=width, height=height, codec="h264", file_size=1024),
            captions=captions or [],
        )
    return _make


@pytest.fixture
def sample_captions():
    return [
        Caption(start=1.0, end=2.5, text="Hello"),
        Caption(start=6.0, end=8.0, text="World"),
    ]


@pytest.fixture
def fake_runner(temp_dir):
    return FakeRunner(watch_dir=temp_dir)


@pytest.fixture
def fake_ffmpeg(temp_dir):
    """An executable that mimics ffmpeg's stderr progress; mode via FAKE_FFMPEG_MODE."""
    script = temp_dir / "bin" / "ffmpeg"
    script.parent.mkdir()
    script.write_text(FAKE_FFMPEG.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return script


@pytest.fixture(autouse=True)
def reset_logger_singleton():
    """Reset logger singleton between tests to avoid state leakage."""
    from clipforge.utils import logger
    original_instance = logger._logger
    original_initialized = logger.Logger._initialized

    yield

    # We don't fully reset to avoid recreating handlers
    logger._logger = original_instance
    logger.Logger._initialized = original_initialized
