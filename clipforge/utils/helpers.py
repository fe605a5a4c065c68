"""
Utility functions for ClipForge
"""

from __future__ import annotations

import math


def format_duration(seconds: float | int) -> str:
    """
    Format seconds to human readable duration.
    Returns 'H:MM:SS' or 'M:SS' format.
    """
    sec = int(round(seconds))
    m, s = divmod(sec, 60)
    h, m = divmod(m, 60)

    if h:
        return f"{h:d}:{m:02d}:{s:02d}"
    return f"{m:d}:{s:02d}"


def format_time(seconds: float) -> str:
    """
    Format seconds as M:SS for timeline labels.
    Fractions are truncated, not rounded; negative or NaN input shows 0:00.
    """
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def format_size(size_bytes: int) -> str:
    """
    Format bytes to human readable size.
    Returns size with appropriate unit (B, KB, MB, GB).
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 ** 2:
        return f"{size_bytes / 1024:.1f} KB"
    if size_bytes < 1024 ** 3:
        return f"{size_bytes / 1024 ** 2:.1f} MB"
    return f"{size_bytes / 1024 ** 3:.2f} GB"
