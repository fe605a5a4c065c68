"""
Timeline geometry: time <-> horizontal offset at a zoom factor, and the
vertical layout of the fixed set of tracks.
"""

from __future__ import annotations

import math

from .trim import constrain

BASE_PIXELS_PER_SECOND = 100  # 100px = 1 second at 1.0 zoom
MIN_ZOOM = 0.25
MAX_ZOOM = 4.0

TRACK_HEIGHT = 80
TRACK_GAP = 10
NUM_TRACKS = 2  # 0 = main, 1 = overlay
MAIN_TRACK = 0
OVERLAY_TRACK = 1

MARKER_INTERVAL = 5


def _check_zoom(zoom: float) -> None:
    if not zoom > 0:
        raise ValueError(f"zoom must be positive, got {zoom!r}")


def pixels_per_second(zoom: float = 1.0) -> float:
    _check_zoom(zoom)
    return BASE_PIXELS_PER_SECOND * zoom


def clamp_zoom(zoom: float) -> float:
    return constrain(zoom, MIN_ZOOM, MAX_ZOOM)


def time_to_offset(seconds: float, zoom: float = 1.0) -> float:
    return seconds * pixels_per_second(zoom)


def offset_to_time(offset: float, zoom: float = 1.0) -> float:
    return offset / pixels_per_second(zoom)


def clip_width(duration: float, zoom: float = 1.0) -> float:
    """Width of a clip in pixels; NaN or negative durations draw as zero."""
    if not math.isfinite(duration):
        duration = 0.0
    return max(0.0, duration) * pixels_per_second(zoom)


def track_index(vertical_offset: float) -> int:
    """Track under a vertical position, clamped to the existing tracks."""
    track = math.floor(vertical_offset / (TRACK_HEIGHT + TRACK_GAP))
    return int(constrain(track, 0, NUM_TRACKS - 1))


def track_offset(index: int) -> int:
    return index * (TRACK_HEIGHT + TRACK_GAP)


def clamp_track(index: int) -> int:
    return int(constrain(index, 0, NUM_TRACKS - 1))


def generate_markers(total_duration: float, interval: float = MARKER_INTERVAL) -> list[float]:
    """Ruler marks [0, interval, 2*interval, ...] up to and including total_duration."""
    if interval <= 0:
        raise ValueError("interval must be positive")
    if not math.isfinite(total_duration) or total_duration < 0:
        return []
    count = int(math.floor(total_duration / interval))
    return [i * interval for i in range(count + 1)]
