"""
Caption timing: re-basing clip-local subtitle cues onto the timeline clock,
and writing them out as SRT for the subtitle burn-in filter.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .models import Caption, PlacedClip


def adjust_captions(clip: PlacedClip) -> list[Caption]:
    """
    Map each of the clip's cues onto the global timeline.

    Cues outside [trim_start, trim_end] are translated too; filtering them
    is up to the caller (see visible_captions).
    """
    offset = clip.start_time - clip.trim_start
    return [Caption(c.start + offset, c.end + offset, c.text) for c in clip.captions]


def visible_captions(clip: PlacedClip) -> list[Caption]:
    """Adjusted cues that overlap the clip's span on the timeline, clipped to it."""
    span_start, span_end = clip.start_time, clip.end_time
    visible = []
    for cue in adjust_captions(clip):
        start = max(cue.start, span_start)
        end = min(cue.end, span_end)
        if end > start and cue.text.strip():
            visible.append(Caption(start, end, cue.text))
    return visible


def format_srt_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm."""
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, ms = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def to_srt(captions: Iterable[Caption]) -> str:
    """Render cues (sorted by start) as SRT text."""
    blocks = []
    ordered = sorted(captions, key=lambda c: c.start)
    for i, cue in enumerate(ordered, start=1):
        blocks.append(
            f"{i}\n"
            f"{format_srt_timestamp(cue.start)} --> {format_srt_timestamp(cue.end)}\n"
            f"{cue.text.strip()}\n"
        )
    return "\n".join(blocks)


def write_srt(captions: Iterable[Caption], path: str | Path) -> Path:
    p = Path(path)
    p.write_text(to_srt(captions), encoding="utf-8")
    return p
