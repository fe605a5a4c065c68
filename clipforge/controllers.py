"""
Controllers for ClipForge
Run exports off the caller's thread and relay their progress
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .core.errors import ExportErrorKind, ExportResult
from .core.export import ExportCompositor
from .core.models import ExportProgress, PlacedClip, Resolution
from .utils.logger import get_logger


def _call_now(func: Callable[[], None]) -> None:
    func()


class ExportController:
    """Controller for video export operations."""

    def __init__(
        self,
        compositor: ExportCompositor,
        ui_callback: Optional[Callable[[Callable], None]] = None
    ):
        self.compositor = compositor
        # Hands callbacks to the UI thread; by default they run on the worker.
        self._schedule_ui = ui_callback or _call_now
        self._logger = get_logger()

        # State
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_time: Optional[float] = None
        self._result: Optional[ExportResult] = None

        # UI callbacks
        self.on_progress: Optional[Callable[[ExportProgress], None]] = None
        self.on_status_change: Optional[Callable[[str], None]] = None
        self.on_start: Optional[Callable[[], None]] = None
        self.on_complete: Optional[Callable[[ExportResult], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def result(self) -> Optional[ExportResult]:
        """Result of the last finished export."""
        return self._result

    def start_export(
        self,
        clips: list[PlacedClip],
        output_path: Union[str, Path],
        resolution: Union[Resolution, str, None] = None,
    ) -> bool:
        """
        Start an export on a background thread.
        Returns False if this controller is already exporting.
        """
        if self.is_running:
            self._logger.warning("Export already running, ignoring new request")
            return False

        self._cancel_event = threading.Event()
        self._result = None
        self._start_time = time.time()
        snapshot = [c.copy() for c in clips]

        if self.on_status_change:
            self._schedule_ui(lambda: self.on_status_change("Exporting..."))
        if self.on_start:
            self._schedule_ui(self.on_start)

        self._logger.info(f"Starting export to {output_path}")

        self._thread = threading.Thread(
            target=self._run_export,
            args=(snapshot, str(output_path), resolution),
            daemon=True
        )
        self._thread.start()
        return True

    def _run_export(self, clips: list[PlacedClip], output_path: str, resolution) -> None:
        """Run export in background thread."""
        def progress_callback(progress: ExportProgress):
            if self.on_progress:
                self._schedule_ui(lambda p=progress: self.on_progress(p))

        result = self.compositor.export(
            clips,
            output_path,
            resolution,
            progress_callback=progress_callback,
            cancel_event=self._cancel_event,
        )
        self._result = result
        elapsed = time.time() - self._start_time if self._start_time else 0.0
        self._start_time = None

        if result.error_kind is ExportErrorKind.CANCELLED:
            if self.on_status_change:
                self._schedule_ui(lambda: self.on_status_change("Export cancelled"))
            self._logger.info("Export was cancelled by user")
        elif result.success:
            if self.on_status_change:
                self._schedule_ui(lambda: self.on_status_change(f"Export finished ({elapsed:.1f}s)"))
        else:
            error_msg = result.error or "Unknown error"
            if self.on_error:
                self._schedule_ui(lambda: self.on_error(
                    "Export failed",
                    f"The export failed.\n\nDetails:\n{error_msg}\n\n"
                    "Check the logs for more information."
                ))
            if self.on_status_change:
                self._schedule_ui(lambda: self.on_status_change("Export failed"))

        if self.on_complete:
            self._schedule_ui(lambda: self.on_complete(result))

    def cancel(self) -> None:
        """Cancel the current export; the compositor still cleans up."""
        if self.is_running and not self._cancel_event.is_set():
            self._cancel_event.set()
            self._logger.info("Export cancellation requested")
            if self.on_status_change:
                self.on_status_change("Cancelling...")

    def wait(self, timeout: Optional[float] = None) -> Optional[ExportResult]:
        """Block until the running export finishes; returns its result."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self._result

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested for the current export."""
        return self._cancel_event.is_set()
