"""
Timeline model for ClipForge

Holds placed clips in an arena keyed by id plus an explicit order list;
per-track ordering is derived from start times. Every mutation is applied
synchronously. The model has no locking: callers on several threads must
funnel mutations through a single owner.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .geometry import MAIN_TRACK, NUM_TRACKS, clamp_track
from .models import Caption, PlacedClip, SourceClip
from .trim import MIN_TRIM_SEPARATION, constrain
from ..utils.logger import get_logger


class Timeline:
    """Two-track arrangement of trimmed clips, one selection and a playhead."""

    def __init__(self):
        self._clips: dict[str, PlacedClip] = {}
        self._order: list[str] = []
        self._sources: dict[str, SourceClip] = {}
        self.selected_clip_id: Optional[str] = None
        self.playhead: float = 0.0
        self._logger = get_logger()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def clips(self) -> list[PlacedClip]:
        """Placed clips in index order."""
        return [self._clips[cid] for cid in self._order]

    @property
    def sources(self) -> list[SourceClip]:
        return list(self._sources.values())

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, clip_id: str) -> bool:
        return clip_id in self._clips

    def get(self, clip_id: str) -> Optional[PlacedClip]:
        return self._clips.get(clip_id)

    def index_of(self, clip_id: str) -> int:
        return self._order.index(clip_id)

    def track_clips(self, track: int) -> list[PlacedClip]:
        """Clips on one track, sorted by start time (index order breaks ties)."""
        return sorted(
            (c for c in self.clips if c.track == track),
            key=lambda c: c.start_time,
        )

    def total_duration(self) -> float:
        """
        Sum of effective durations of every clip, whatever its track or
        position. Overlapping or gapped placements therefore count in full.
        """
        return sum(c.effective_duration for c in self._clips.values())

    def timeline_end(self) -> float:
        """Rightmost clip end on any track."""
        return max((c.end_time for c in self._clips.values()), default=0.0)

    def clip_at(self, time: float, track: int = MAIN_TRACK) -> Optional[PlacedClip]:
        """Clip on a track whose span contains time (start inclusive, end exclusive)."""
        for clip in self.track_clips(track):
            if clip.start_time <= time < clip.end_time:
                return clip
        return None

    @property
    def selected_clip(self) -> Optional[PlacedClip]:
        if self.selected_clip_id is None:
            return None
        return self._clips.get(self.selected_clip_id)

    def snapshot(self) -> list[PlacedClip]:
        """Independent copies of the clips, safe to hand to a background export."""
        return [c.copy() for c in self.clips]

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    def import_clip(self, source: SourceClip) -> SourceClip:
        """Add a source clip to the media library (replacing one with the same id)."""
        self._sources[source.id] = source
        self._logger.debug(f"Imported clip {source.id}: {source.file_path}")
        return source

    def remove_source(self, source_id: str) -> list[PlacedClip]:
        """Drop a source from the library and every placement made from it."""
        self._sources.pop(source_id, None)
        removed = []
        for clip in [c for c in self.clips if c.source_id == source_id]:
            if self.remove(clip.id) is not None:
                removed.append(clip)
        return removed

    def attach_captions(self, source_id: str, captions: Iterable[Caption]) -> None:
        """Attach subtitle cues to a source and to the clips placed from it."""
        cues = sorted(captions, key=lambda c: c.start)
        source = self._sources.get(source_id)
        if source is not None:
            source.captions = [Caption(c.start, c.end, c.text) for c in cues]
        for clip in self._clips.values():
            if clip.source_id == source_id:
                clip.captions = [Caption(c.start, c.end, c.text) for c in cues]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def place(self, source: SourceClip, track: int = MAIN_TRACK) -> Optional[PlacedClip]:
        """
        Append a clip at the end of a track with its full trim range.

        Placing an id that is already on the timeline is rejected (no-op).
        """
        if source.id in self._clips:
            self._logger.warning(f"Clip {source.id} is already on the timeline, ignoring")
            return None

        track = clamp_track(track)
        start = sum(c.effective_duration for c in self._clips.values() if c.track == track)
        clip = PlacedClip.from_source(source, start_time=start, track=track)
        self._clips[clip.id] = clip
        self._order.append(clip.id)
        self._logger.debug(f"Placed {clip.id} on track {track} at {start:.3f}s")
        return clip

    def remove(self, clip_id: str) -> Optional[PlacedClip]:
        """
        Delete a clip and close the gap it leaves on its own track: later
        clips on that track move left by its effective duration.
        """
        clip = self._clips.pop(clip_id, None)
        if clip is None:
            self._logger.warning(f"Cannot remove unknown clip {clip_id}")
            return None
        self._order.remove(clip_id)

        shift = clip.effective_duration
        for other in self._clips.values():
            if other.track == clip.track and other.start_time > clip.start_time:
                other.start_time = max(0.0, other.start_time - shift)

        if self.selected_clip_id == clip_id:
            self.selected_clip_id = None
        self._clamp_playhead()
        self._logger.debug(f"Removed {clip_id} from track {clip.track}")
        return clip

    def set_trim(
        self,
        clip_id: str,
        trim_start: float,
        trim_end: float,
        min_separation: float = MIN_TRIM_SEPARATION,
    ) -> Optional[PlacedClip]:
        """
        Set a clip's in/out points, clamped to the source and kept at least
        min_separation apart, then re-lay every track gaplessly in index order.
        """
        clip = self._clips.get(clip_id)
        if clip is None:
            self._logger.warning(f"Cannot trim unknown clip {clip_id}")
            return None

        duration = clip.duration
        gap = constrain(min_separation, 0.0, duration)
        start = constrain(trim_start, 0.0, duration)
        end = constrain(trim_end, 0.0, duration)
        if end - start < gap or end <= start:
            end = min(duration, start + gap)
            start = max(0.0, end - gap)
        if end <= start:
            self._logger.warning(f"Trim for {clip_id} would leave no content, ignoring")
            return None

        clip.trim_start = start
        clip.trim_end = end
        self._relayout()
        return clip

    def split(self, clip_id: str, at_time: float) -> Optional[tuple[PlacedClip, PlacedClip]]:
        """
        Cut a clip in two at a global timeline time. Times on or outside the
        clip's span leave the timeline untouched.
        """
        clip = self._clips.get(clip_id)
        if clip is None:
            return None

        offset = at_time - clip.start_time
        if offset <= 0 or offset >= clip.effective_duration:
            self._logger.debug(f"Split of {clip_id} at {at_time:.3f}s is outside the clip, ignoring")
            return None

        cut = clip.trim_start + offset
        first = clip.copy(id=self._derive_id(clip.id), trim_end=cut)
        self._clips[first.id] = first  # reserve the id before deriving the next
        second = clip.copy(
            id=self._derive_id(clip.id),
            trim_start=cut,
            start_time=clip.start_time + offset,
        )

        index = self._order.index(clip_id)
        del self._clips[clip_id]
        self._clips[second.id] = second
        self._order[index:index + 1] = [first.id, second.id]

        self.selected_clip_id = first.id
        self._logger.debug(f"Split {clip_id} at {cut:.3f}s into {first.id}, {second.id}")
        return first, second

    def split_at_playhead(self, clip_id: Optional[str] = None) -> Optional[tuple[PlacedClip, PlacedClip]]:
        """Split the given (or selected) clip at the playhead."""
        target = clip_id or self.selected_clip_id
        if target is None:
            return None
        return self.split(target, self.playhead)

    def move(self, clip_id: str, new_start_time: float, new_track: int) -> Optional[PlacedClip]:
        """Reposition a clip; overlaps are allowed."""
        clip = self._clips.get(clip_id)
        if clip is None:
            self._logger.warning(f"Cannot move unknown clip {clip_id}")
            return None
        clip.start_time = max(0.0, new_start_time)
        clip.track = clamp_track(new_track)
        return clip

    def select(self, clip_id: Optional[str]) -> None:
        if clip_id is not None and clip_id not in self._clips:
            self._logger.warning(f"Cannot select unknown clip {clip_id}")
            return
        self.selected_clip_id = clip_id

    def set_playhead(self, position: float) -> float:
        self.playhead = constrain(position, 0.0, self.total_duration())
        return self.playhead

    def delete_selected(self) -> Optional[PlacedClip]:
        if self.selected_clip_id is None:
            return None
        return self.remove(self.selected_clip_id)

    def clear(self) -> None:
        self._clips.clear()
        self._order.clear()
        self.selected_clip_id = None
        self.playhead = 0.0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _relayout(self) -> None:
        # One pass in index order, one append cursor per track.
        cursors = [0.0] * NUM_TRACKS
        for clip in self.clips:
            clip.start_time = cursors[clip.track]
            cursors[clip.track] += clip.effective_duration
        self._clamp_playhead()

    def _clamp_playhead(self) -> None:
        self.playhead = constrain(self.playhead, 0.0, self.total_duration())

    def _derive_id(self, base: str) -> str:
        n = 1
        while f"{base}-{n}" in self._clips:
            n += 1
        return f"{base}-{n}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Serialize library, clips and UI state."""
        return {
            "sources": [s.to_dict() for s in self._sources.values()],
            "clips": [c.to_dict() for c in self.clips],
            "selected_clip_id": self.selected_clip_id,
            "playhead": self.playhead,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Timeline:
        """Rebuild a timeline from to_dict() output; positions are kept as saved."""
        timeline = cls()
        for source in data.get("sources", []):
            timeline.import_clip(SourceClip.from_dict(source))
        for raw in data.get("clips", []):
            clip = PlacedClip.from_dict(raw)
            clip.track = clamp_track(clip.track)
            timeline._clips[clip.id] = clip
            timeline._order.append(clip.id)
        timeline.select(data.get("selected_clip_id"))
        timeline.set_playhead(float(data.get("playhead", 0.0)))
        return timeline
