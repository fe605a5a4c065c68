"""
Core modules - Models, timeline, FFmpeg export, configuration
"""

from .models import Caption, ExportProgress, PlacedClip, Resolution, SourceClip, VideoMetadata
from .errors import ExportError, ExportErrorKind, ExportResult
from .timeline import Timeline
from .ffmpeg import FFmpegRunner
from .export import ExportCompositor, ExportStrategy
from .config import Config, ProjectManager

__all__ = [
    "Caption",
    "Config",
    "ExportCompositor",
    "ExportError",
    "ExportErrorKind",
    "ExportProgress",
    "ExportResult",
    "ExportStrategy",
    "FFmpegRunner",
    "PlacedClip",
    "ProjectManager",
    "Resolution",
    "SourceClip",
    "Timeline",
    "VideoMetadata",
]
