"""
FFmpeg process handling for ClipForge
Locates the binary, runs it with streamed progress, and supports cancellation
"""

from __future__ import annotations

import base64
import math
import os
import re
import shutil
import subprocess
import tempfile
import threading
import time
from collections import deque
from pathlib import Path
from typing import Callable, Optional

from .errors import ExportError, ExportErrorKind
from .models import ExportProgress
from ..utils.logger import get_logger

ProgressCallback = Callable[[ExportProgress], None]

TIME_REGEX = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")


def parse_time_token(line: str) -> Optional[float]:
    """Seconds from the last 'time=HH:MM:SS.ms' token in a stderr line, if any."""
    matches = TIME_REGEX.findall(line)
    if not matches:
        return None
    h, m, s = matches[-1]
    return int(h) * 3600 + int(m) * 60 + float(s)


def progress_percentage(current_time: float, total_duration: float) -> int:
    """Whole percentage of total_duration, rounded half-up and clamped to 0-100."""
    if total_duration <= 0:
        return 0
    percentage = math.floor(current_time / total_duration * 100 + 0.5)
    return int(max(0, min(100, percentage)))


def parse_progress(line: str, total_duration: float) -> Optional[ExportProgress]:
    """Progress event for a stderr line, or None when it carries no time token."""
    current = parse_time_token(line)
    if current is None:
        return None
    return ExportProgress(
        percentage=progress_percentage(current, total_duration),
        current_time=current,
        total_duration=total_duration,
    )


class FFmpegRunner:
    """Runs the ffmpeg binary and turns its exit status into ExportErrors."""

    # Seconds to wait after terminate() before kill()
    TERMINATE_GRACE = 3.0
    CANCEL_POLL_INTERVAL = 0.1

    def __init__(self, ffmpeg_path: Optional[str] = None, stderr_tail_lines: int = 20):
        self.ffmpeg_path = ffmpeg_path
        self.stderr_tail_lines = stderr_tail_lines
        self._logger = get_logger()

    def resolve_binary(self) -> str:
        """
        Path of the ffmpeg executable: the configured one, else the one on PATH.
        Raises ExportError(BINARY_NOT_FOUND) if neither is usable.
        """
        if self.ffmpeg_path:
            candidate = self.ffmpeg_path
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return candidate
            found = shutil.which(candidate)
        else:
            found = shutil.which("ffmpeg")

        if not found:
            name = self.ffmpeg_path or "ffmpeg"
            raise ExportError(
                ExportErrorKind.BINARY_NOT_FOUND,
                f"FFmpeg binary not found or not executable: {name}",
            )
        return found

    @property
    def available(self) -> bool:
        try:
            self.resolve_binary()
        except ExportError:
            return False
        return True

    def run(
        self,
        args: list[str],
        output_path: str,
        total_duration: float,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Run ffmpeg with args and wait for it, streaming progress from stderr.

        Succeeds only when the process exits 0 and output_path exists.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise ExportError(ExportErrorKind.CANCELLED, "Export cancelled")

        cmd = [self.resolve_binary(), "-hide_banner", *args]
        self._logger.log_ffmpeg_command(cmd)

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,  # universal newlines also split ffmpeg's \r stats lines
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ExportError(
                ExportErrorKind.SPAWN_FAILED, f"Failed to spawn FFmpeg: {e}"
            ) from e

        tail: deque[str] = deque(maxlen=self.stderr_tail_lines)
        done = threading.Event()
        watcher = None
        if cancel_event is not None:
            watcher = threading.Thread(
                target=self._watch_cancel, args=(proc, cancel_event, done), daemon=True
            )
            watcher.start()

        try:
            with proc:
                for line in proc.stderr:
                    line = line.rstrip()
                    if not line:
                        continue
                    tail.append(line)
                    progress = parse_progress(line, total_duration)
                    if progress is not None and progress_callback:
                        progress_callback(progress)
                returncode = proc.wait()
        finally:
            done.set()
            if watcher is not None:
                watcher.join(timeout=self.TERMINATE_GRACE + 1)

        if cancel_event is not None and cancel_event.is_set():
            raise ExportError(ExportErrorKind.CANCELLED, "Export cancelled", list(tail))

        if returncode != 0:
            details = "\n".join(tail)
            raise ExportError(
                ExportErrorKind.NON_ZERO_EXIT,
                f"Export failed with code {returncode}: {details}",
                list(tail),
            )

        if not os.path.exists(output_path):
            raise ExportError(
                ExportErrorKind.OUTPUT_MISSING,
                f"Output file was not created: {output_path}",
                list(tail),
            )

    def _watch_cancel(
        self,
        proc: subprocess.Popen,
        cancel_event: threading.Event,
        done: threading.Event,
    ) -> None:
        """Terminate proc once cancel_event fires, unless it finished first."""
        while not done.is_set():
            if cancel_event.wait(self.CANCEL_POLL_INTERVAL):
                break
        else:
            return
        if proc.poll() is not None:
            return

        self._logger.info(f"Cancelling FFmpeg process {proc.pid}")
        proc.terminate()
        deadline = time.monotonic() + self.TERMINATE_GRACE
        while proc.poll() is None and time.monotonic() < deadline:
            time.sleep(self.CANCEL_POLL_INTERVAL)
        if proc.poll() is None:
            self._logger.warning(f"FFmpeg process {proc.pid} ignored terminate, killing")
            proc.kill()

    def generate_thumbnail(self, file_path: str, at: float = 1.0, temp_dir: Optional[str] = None) -> Optional[str]:
        """
        Grab one frame as a JPEG data URI for the media library.
        Returns None on failure; the intermediate file is always removed.
        """
        fd, thumb_path = tempfile.mkstemp(prefix="clipforge-thumb-", suffix=".jpg", dir=temp_dir)
        os.close(fd)
        os.remove(thumb_path)

        args = [
            "-ss", str(at),
            "-i", file_path,
            "-vframes", "1",
            "-q:v", "2",
            "-y", thumb_path,
        ]
        try:
            self.run(args, thumb_path, total_duration=0.0)
            data = Path(thumb_path).read_bytes()
            return "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")
        except ExportError as e:
            self._logger.warning(f"Thumbnail generation failed for {file_path}: {e.message}")
            return None
        finally:
            try:
                os.remove(thumb_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                self._logger.warning(f"Failed to delete temp thumbnail {thumb_path}: {e}")
