"""
Export failure taxonomy and the structured result handed back to callers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ExportErrorKind(str, Enum):
    """Why an export did not produce its output file."""

    # Validation, detected before anything is spawned
    EMPTY_TIMELINE = "empty_timeline"
    INVALID_CLIP = "invalid_clip"
    NO_MAIN_TRACK_CLIPS = "no_main_track_clips"
    INVALID_RESOLUTION = "invalid_resolution"
    EXPORT_IN_PROGRESS = "export_in_progress"
    # Environment
    BINARY_NOT_FOUND = "binary_not_found"
    SPAWN_FAILED = "spawn_failed"
    # Subprocess
    NON_ZERO_EXIT = "non_zero_exit"
    OUTPUT_MISSING = "output_missing"
    CANCELLED = "cancelled"
    # Anything else raised while staging files
    INTERNAL = "internal"


class ExportError(Exception):
    """Raised inside the export pipeline; converted to ExportResult at the boundary."""

    def __init__(self, kind: ExportErrorKind, message: str, stderr_tail: Optional[list[str]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.stderr_tail = list(stderr_tail or [])


@dataclass
class ExportResult:
    """Outcome of one export request."""

    success: bool
    output_path: str = ""
    error: Optional[str] = None
    error_kind: Optional[ExportErrorKind] = None
    strategy: Optional[str] = None
    stderr_tail: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, output_path: str, strategy: str) -> ExportResult:
        return cls(success=True, output_path=output_path, strategy=strategy)

    @classmethod
    def failed(cls, error: ExportError, output_path: str = "", strategy: Optional[str] = None) -> ExportResult:
        return cls(
            success=False,
            output_path=output_path,
            error=error.message,
            error_kind=error.kind,
            strategy=strategy,
            stderr_tail=error.stderr_tail,
        )

    @property
    def cancelled(self) -> bool:
        return self.error_kind is ExportErrorKind.CANCELLED

    def to_dict(self) -> dict:
        """Serialize to the {success, error?} shape returned to the UI."""
        data = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
            data["error_kind"] = self.error_kind.value if self.error_kind else None
        if self.strategy is not None:
            data["strategy"] = self.strategy
        return data
