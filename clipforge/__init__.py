"""
ClipForge - timeline model and ffmpeg export compositor
"""

from .core import (
    Caption,
    Config,
    ExportCompositor,
    ExportResult,
    PlacedClip,
    Resolution,
    SourceClip,
    Timeline,
)
from .controllers import ExportController

__version__ = "1.0.0"

__all__ = [
    "Caption",
    "Config",
    "ExportCompositor",
    "ExportController",
    "ExportResult",
    "PlacedClip",
    "Resolution",
    "SourceClip",
    "Timeline",
]
