"""
Logging for ClipForge

One "ClipForge" logger shared by the timeline, the export compositor and the
ffmpeg runner. Warnings go to stderr; a per-run log file under
~/.clipforge/logs keeps the full debug trail, including every ffmpeg command
line and the stderr tail of failed encodes.
"""

from __future__ import annotations

import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..core.errors import ExportError


class Logger:
    """Process-wide logging front end for ClipForge."""

    _instance: Optional[Logger] = None
    _initialized: bool = False

    LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    DEFAULT_LOG_DIR = Path.home() / ".clipforge" / "logs"
    LOG_PREFIX = "clipforge_"
    LOG_RETENTION_DAYS = 7

    def __new__(cls) -> Logger:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if Logger._initialized:
            return

        self._logger = logging.getLogger("ClipForge")
        self._logger.setLevel(logging.INFO)
        self._logger.handlers.clear()

        self._console = logging.StreamHandler(sys.stderr)
        self._console.setLevel(logging.WARNING)
        self._console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        self._logger.addHandler(self._console)

        self._file_handler: Optional[logging.FileHandler] = None
        self._log_dir: Optional[Path] = None

        Logger._initialized = True

    def configure(self, level: str = "info", verbose: bool = False) -> None:
        """
        Apply the configured log level. verbose (the CLI's -v) turns on
        debug output everywhere, the console included.
        """
        if verbose:
            self._logger.setLevel(logging.DEBUG)
            self._console.setLevel(logging.DEBUG)
            return
        self._logger.setLevel(self.LEVELS.get(str(level).lower(), logging.INFO))
        self._console.setLevel(logging.WARNING)

    def enable_file_logging(self, log_dir: Optional[Path] = None) -> Path:
        """
        Start a timestamped log file in log_dir (default ~/.clipforge/logs).

        A previous log file, if any, is closed first so one run writes to one
        file. Returns the new file's path.
        """
        log_dir = Path(log_dir or self.DEFAULT_LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)

        if self._file_handler is not None:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{self.LOG_PREFIX}{timestamp}.log"

        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(threadName)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        self._logger.addHandler(handler)
        self._file_handler = handler
        self._log_dir = log_dir

        self.info(f"Logging to {log_file}")
        return log_file

    def prune_logs(self, max_days: int = LOG_RETENTION_DAYS) -> int:
        """Delete ClipForge log files older than max_days; returns how many went."""
        log_dir = self._log_dir or self.DEFAULT_LOG_DIR
        if not log_dir.exists():
            return 0

        current = Path(self._file_handler.baseFilename) if self._file_handler else None
        cutoff = datetime.now().timestamp() - max_days * 24 * 60 * 60
        removed = 0
        for log_file in log_dir.glob(f"{self.LOG_PREFIX}*.log"):
            if log_file == current:
                continue
            try:
                if log_file.stat().st_mtime < cutoff:
                    log_file.unlink()
                    removed += 1
            except OSError as e:
                self.debug(f"Could not prune {log_file}: {e}")

        if removed:
            self.info(f"Pruned {removed} old log file(s) from {log_dir}")
        return removed

    def debug(self, message: str, *args, **kwargs) -> None:
        self._logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self._logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self._logger.error(message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs) -> None:
        self._logger.critical(message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs) -> None:
        """Log at error level with the active traceback."""
        self._logger.exception(message, *args, **kwargs)

    def log_ffmpeg_command(self, cmd: list[str]) -> None:
        """Log an ffmpeg invocation as a line that can be pasted into a shell."""
        self.debug(f"ffmpeg: {shlex.join(cmd)}")

    def log_export_start(self, output_path: str, strategy: str, resolution: str) -> None:
        self.info(f"Export started: output={output_path}, strategy={strategy}, resolution={resolution}")

    def log_export_failure(self, error: ExportError) -> None:
        """Log a failed export; the ffmpeg stderr tail goes to the debug trail."""
        self.error(f"Export {error.kind.value}: {error.message}")
        for line in error.stderr_tail:
            self.debug(f"  ffmpeg| {line}")

    def log_export_complete(self, output_path: str, duration_seconds: float, success: bool) -> None:
        status = "SUCCESS" if success else "FAILED"
        self.info(f"Export {status}: output={output_path}, duration={duration_seconds:.1f}s")

    def log_temp_cleanup(self, removed: int, failed: int) -> None:
        # A leftover temp file is worth a warning; a clean pass is not.
        if failed:
            self.warning(f"Temp cleanup: removed={removed}, failed={failed}")
        else:
            self.debug(f"Temp cleanup: removed={removed}")

    def log_file_operation(self, operation: str, path: str, success: bool = True) -> None:
        """Debug trail of project and temp file I/O; callers report failures themselves."""
        self.debug(f"File {operation} {'OK' if success else 'FAILED'}: {path}")


_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Return the shared ClipForge logger."""
    global _logger
    if _logger is None:
        _logger = Logger()
    return _logger
