"""
Data models for ClipForge
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union


@dataclass
class VideoMetadata:
    """Probed container metadata for an imported clip."""

    width: int = 0
    height: int = 0
    codec: str = ""
    file_size: int = 0
    bitrate: Optional[int] = None
    framerate: Optional[float] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary for project saving."""
        data = {
            "width": self.width,
            "height": self.height,
            "codec": self.codec,
            "file_size": self.file_size,
        }
        if self.bitrate is not None:
            data["bitrate"] = self.bitrate
        if self.framerate is not None:
            data["framerate"] = self.framerate
        return data

    @classmethod
    def from_dict(cls, data: dict) -> VideoMetadata:
        """Create from dictionary."""
        return cls(
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            codec=data.get("codec", ""),
            file_size=int(data.get("file_size", 0)),
            bitrate=data.get("bitrate"),
            framerate=data.get("framerate"),
        )


@dataclass
class Caption:
    """A subtitle cue in seconds, local to its clip's own timeline."""

    start: float
    end: float
    text: str

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> Caption:
        return cls(
            start=float(data["start"]),
            end=float(data["end"]),
            text=data.get("text", ""),
        )


def _sorted_captions(captions) -> list[Caption]:
    return sorted((replace(c) for c in captions or []), key=lambda c: c.start)


@dataclass
class SourceClip:
    """An imported media reference."""

    id: str
    file_path: str
    duration: float
    filename: str = ""
    metadata: Optional[VideoMetadata] = None
    thumbnail: Optional[str] = None
    captions: list[Caption] = field(default_factory=list)

    def __post_init__(self):
        if not self.filename:
            self.filename = Path(self.file_path).name
        self.captions = _sorted_captions(self.captions)

    def to_dict(self) -> dict:
        """Serialize to dictionary for project saving."""
        data = {
            "id": self.id,
            "file_path": self.file_path,
            "filename": self.filename,
            "duration": self.duration,
            "captions": [c.to_dict() for c in self.captions],
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        if self.thumbnail:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: dict) -> SourceClip:
        """Create from dictionary."""
        metadata = data.get("metadata")
        return cls(
            id=data["id"],
            file_path=data["file_path"],
            duration=float(data.get("duration", 0.0)),
            filename=data.get("filename", ""),
            metadata=VideoMetadata.from_dict(metadata) if metadata else None,
            thumbnail=data.get("thumbnail"),
            captions=[Caption.from_dict(c) for c in data.get("captions", [])],
        )


@dataclass
class PlacedClip:
    """A source clip placed on the timeline with trim points and a track."""

    id: str
    file_path: str
    duration: float
    filename: str = ""
    source_id: str = ""
    start_time: float = 0.0
    trim_start: float = 0.0
    trim_end: float = 0.0
    track: int = 0
    metadata: Optional[VideoMetadata] = None
    thumbnail: Optional[str] = None
    captions: list[Caption] = field(default_factory=list)
    # Preview-only PiP placement for track 1; export recomputes geometry.
    position: Optional[tuple[float, float]] = None
    scale: Optional[float] = None

    def __post_init__(self):
        if not self.filename:
            self.filename = Path(self.file_path).name
        if not self.source_id:
            self.source_id = self.id
        self.captions = _sorted_captions(self.captions)

    @classmethod
    def from_source(cls, source: SourceClip, start_time: float = 0.0, track: int = 0) -> PlacedClip:
        """Create a placement of a source clip with its full trim range."""
        return cls(
            id=source.id,
            file_path=source.file_path,
            duration=source.duration,
            filename=source.filename,
            source_id=source.id,
            start_time=start_time,
            trim_start=0.0,
            trim_end=source.duration,
            track=track,
            metadata=replace(source.metadata) if source.metadata else None,
            thumbnail=source.thumbnail,
            captions=source.captions,
        )

    @property
    def effective_duration(self) -> float:
        """Length of the clip on the timeline after trimming."""
        return max(0.0, self.trim_end - self.trim_start)

    @property
    def end_time(self) -> float:
        return self.start_time + self.effective_duration

    @property
    def is_trimmed(self) -> bool:
        return self.trim_start > 0 or self.trim_end < self.duration

    def copy(self, **changes) -> PlacedClip:
        """Return a deep-enough copy (captions and metadata are not shared)."""
        clone = replace(self, **changes)
        clone.captions = [replace(c) for c in clone.captions]
        if clone.metadata is not None:
            clone.metadata = replace(clone.metadata)
        return clone

    def to_dict(self) -> dict:
        """Serialize to dictionary for project saving."""
        data = {
            "id": self.id,
            "source_id": self.source_id,
            "file_path": self.file_path,
            "filename": self.filename,
            "duration": self.duration,
            "start_time": self.start_time,
            "trim_start": self.trim_start,
            "trim_end": self.trim_end,
            "track": self.track,
            "captions": [c.to_dict() for c in self.captions],
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        if self.position is not None:
            data["position"] = list(self.position)
        if self.scale is not None:
            data["scale"] = self.scale
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PlacedClip:
        """Create from dictionary."""
        duration = float(data.get("duration", 0.0))
        metadata = data.get("metadata")
        position = data.get("position")
        return cls(
            id=data["id"],
            file_path=data["file_path"],
            duration=duration,
            filename=data.get("filename", ""),
            source_id=data.get("source_id", ""),
            start_time=float(data.get("start_time", 0.0)),
            trim_start=float(data.get("trim_start", 0.0)),
            trim_end=float(data.get("trim_end", duration)),
            track=int(data.get("track", 0)),
            metadata=VideoMetadata.from_dict(metadata) if metadata else None,
            thumbnail=data.get("thumbnail"),
            captions=[Caption.from_dict(c) for c in data.get("captions", [])],
            position=tuple(position) if position else None,
            scale=data.get("scale"),
        )


_DIMENSIONS_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


@dataclass(frozen=True)
class Resolution:
    """Target output size in pixels."""

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    @classmethod
    def parse(cls, value: Union[str, Resolution, dict, None]) -> Optional[Resolution]:
        """
        Parse a preset name ('720p'), 'WxH', a {width, height} dict, or
        'source'/None (no scaling, returns None).
        """
        if value is None or isinstance(value, Resolution):
            return value
        if isinstance(value, dict):
            width, height = int(value["width"]), int(value["height"])
        elif isinstance(value, str):
            key = value.strip().lower()
            if key in ("", "source"):
                return None
            preset = RESOLUTION_PRESETS.get(key)
            if preset is not None:
                return preset
            match = _DIMENSIONS_RE.match(key)
            if not match:
                raise ValueError(f"Unknown resolution: {value!r}")
            width, height = int(match.group(1)), int(match.group(2))
        else:
            raise ValueError(f"Unsupported resolution value: {value!r}")

        if width <= 0 or height <= 0:
            raise ValueError(f"Resolution must be positive: {value!r}")
        return cls(width, height)


RESOLUTION_PRESETS: dict[str, Optional[Resolution]] = {
    "source": None,
    "4k": Resolution(3840, 2160),
    "1080p": Resolution(1920, 1080),
    "720p": Resolution(1280, 720),
    "480p": Resolution(854, 480),
}


@dataclass
class ExportProgress:
    """Progress event emitted while the transcoding engine runs."""

    percentage: int
    current_time: float
    total_duration: float

    def to_dict(self) -> dict:
        return {
            "percentage": self.percentage,
            "current_time": self.current_time,
            "total_duration": self.total_duration,
        }
