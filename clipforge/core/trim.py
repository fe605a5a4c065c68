"""
Trim arithmetic: validating and constraining in/out points against a
clip's source duration. Values are compared as given; rounding is left to
whoever displays them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

# Smallest span the interactive trim handles may leave between in and out.
MIN_TRIM_SEPARATION = 0.5


class TrimError(str, Enum):
    NEGATIVE_TRIM_START = "negative_trim_start"
    TRIM_EXCEEDS_DURATION = "trim_exceeds_duration"
    TRIM_ORDER_INVALID = "trim_order_invalid"


_MESSAGES = {
    TrimError.NEGATIVE_TRIM_START: "Trim in-point cannot be negative",
    TrimError.TRIM_EXCEEDS_DURATION: "Trim out-point cannot exceed clip duration",
    TrimError.TRIM_ORDER_INVALID: "Trim in-point must be before out-point",
}


@dataclass(frozen=True)
class TrimValidation:
    valid: bool
    trim_start: float
    trim_end: float
    reason: Optional[TrimError] = None

    @property
    def error(self) -> Optional[str]:
        return _MESSAGES[self.reason] if self.reason else None


def validate_trim(trim_start: float, trim_end: float, duration: float) -> TrimValidation:
    """Validate trim points against clip duration."""
    reason = None
    if trim_start < 0:
        reason = TrimError.NEGATIVE_TRIM_START
    elif trim_end > duration:
        reason = TrimError.TRIM_EXCEEDS_DURATION
    elif trim_start >= trim_end:
        reason = TrimError.TRIM_ORDER_INVALID
    return TrimValidation(reason is None, trim_start, trim_end, reason)


def is_valid_trim(trim_start: float, trim_end: float, duration: float) -> bool:
    return validate_trim(trim_start, trim_end, duration).valid


def constrain(value: float, minimum: float, maximum: float) -> float:
    """Clamp value into [minimum, maximum]."""
    return max(minimum, min(maximum, value))


def effective_duration(trim_start: float, trim_end: float) -> float:
    """Duration left after trimming; never negative."""
    return max(0.0, trim_end - trim_start)


def trim_percentage(trim_start: float, trim_end: float, duration: float) -> float:
    """How much of the source clip remains, as a percentage."""
    if duration <= 0:
        return 0.0
    return effective_duration(trim_start, trim_end) / duration * 100


def snap_to_second(value: float) -> float:
    """Round to the nearest whole second, halves rounding up."""
    return float(math.floor(value + 0.5))


def pixel_to_trim_point(
    pixel_x: float,
    clip_start_x: float,
    pixels_per_second: float,
    clip_trim_start: float,
) -> float:
    """Convert a pointer position over a clip into a source-local trim time."""
    relative_seconds = (pixel_x - clip_start_x) / pixels_per_second
    return clip_trim_start + relative_seconds


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def safe_duration(clip: Any) -> float:
    """
    Effective duration of a clip-like object or dict, tolerating missing,
    None or NaN fields (trim_end falls back to duration, then to 0).
    """
    def pick(name: str):
        if isinstance(clip, dict):
            return clip.get(name)
        return getattr(clip, name, None)

    start = _finite(pick("trim_start"))
    end = _finite(pick("trim_end"))
    if end is None:
        end = _finite(pick("duration"))
    return effective_duration(start or 0.0, end or 0.0)
