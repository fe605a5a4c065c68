"""
FFmpeg argument builders for single clips and the concat demuxer.

Everything here is pure: argument vectors are returned, never executed.
The binary itself is prepended by FFmpegRunner.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import PlacedClip, Resolution


@dataclass
class EncoderSettings:
    """Fixed output codec and quality settings."""

    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = 23
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    def codec_args(self) -> list[str]:
        return [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", "yuv420p",
            "-c:a", self.audio_codec,
            "-b:a", self.audio_bitrate,
        ]

    @classmethod
    def from_dict(cls, data: dict) -> EncoderSettings:
        defaults = cls()
        return cls(
            video_codec=data.get("video_codec", defaults.video_codec),
            preset=data.get("preset", defaults.preset),
            crf=int(data.get("crf", defaults.crf)),
            audio_codec=data.get("audio_codec", defaults.audio_codec),
            audio_bitrate=data.get("audio_bitrate", defaults.audio_bitrate),
        )


def format_seconds(value: float) -> str:
    """Compact decimal seconds for argument vectors: 5 -> '5', 1.25 -> '1.25'."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def build_scale_pad_filter(width: int, height: int) -> str:
    """Fit the picture inside width x height keeping its aspect, centered on black bars."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1"
    )


def build_clip_command(
    clip: PlacedClip,
    output_path: str,
    resolution: Optional[Resolution] = None,
    encoder: Optional[EncoderSettings] = None,
) -> list[str]:
    """
    Arguments that render one clip's trimmed range to output_path.

    Seeking goes before -i (fast input seek); the duration limit follows the
    input and is only added when the out-point is before the source end.
    """
    encoder = encoder or EncoderSettings()
    args: list[str] = []

    if clip.trim_start > 0:
        args.extend(["-ss", format_seconds(clip.trim_start)])

    args.extend(["-i", clip.file_path])

    if clip.trim_end < clip.duration:
        args.extend(["-t", format_seconds(clip.trim_end - clip.trim_start)])

    if resolution is not None:
        args.extend(["-vf", build_scale_pad_filter(resolution.width, resolution.height)])

    args.extend(encoder.codec_args())
    args.extend(["-y", output_path])
    return args


def manifest_content(paths: Iterable[str]) -> str:
    """
    Concat demuxer file list: one "file '<path>'" line per entry.
    Single quotes inside a path are closed, escaped and reopened.
    """
    lines = []
    for path in paths:
        escaped = str(path).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines)


def build_concat_command(
    manifest_path: str,
    output_path: str,
    resolution: Optional[Resolution] = None,
    encoder: Optional[EncoderSettings] = None,
) -> list[str]:
    """Arguments that join the files listed in a concat manifest into one output."""
    encoder = encoder or EncoderSettings()
    args = [
        "-f", "concat",
        "-safe", "0",  # Allow absolute file paths
        "-i", manifest_path,
    ]
    if resolution is not None:
        args.extend(["-vf", build_scale_pad_filter(resolution.width, resolution.height)])
    args.extend(encoder.codec_args())
    args.extend(["-y", output_path])
    return args
