"""
Export compositor for ClipForge

Lowers a timeline snapshot into ffmpeg invocations using one of three
strategies (single clip, concat demuxer, multi-track picture-in-picture
composite) and removes every temporary artifact it created, whatever the
outcome.
"""

from __future__ import annotations

import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .captions import visible_captions, write_srt
from .commands import (
    EncoderSettings,
    build_clip_command,
    build_concat_command,
    build_scale_pad_filter,
    format_seconds,
    manifest_content,
)
from .errors import ExportError, ExportErrorKind, ExportResult
from .ffmpeg import FFmpegRunner, ProgressCallback
from .geometry import MAIN_TRACK, OVERLAY_TRACK
from .models import PlacedClip, Resolution
from ..utils.logger import get_logger

# Gaps shorter than this between clips on a track are not filled.
GAP_EPSILON = 1e-3


class ExportStrategy(str, Enum):
    SINGLE = "single"
    CONCAT = "concat"
    COMPOSITE = "composite"


@dataclass
class CompositeSettings:
    """Fixed geometry and stream formats for the picture-in-picture composite."""

    pip_width_ratio: float = 0.22
    pip_margin: int = 20
    fps: int = 30
    sample_rate: int = 48000
    fallback_resolution: Resolution = Resolution(1920, 1080)

    def pip_size(self, target: Resolution) -> tuple[int, int]:
        """Overlay box: a fraction of the target width, 16:9, even dimensions."""
        width = _even(target.width * self.pip_width_ratio)
        height = _even(width * 9 / 16)
        return width, height


def _even(value: float) -> int:
    return max(2, int(round(value)) // 2 * 2)


class TempArtifacts:
    """
    Registry of temporary files for one export job.

    Names follow <prefix>-<purpose>-<timestamp>[-<index>].<ext>, where the
    timestamp field is <millis>_<pid>. The millisecond stamp strictly increases
    within a process and the pid separates processes sharing a temp directory.
    """

    _stamp_lock = threading.Lock()
    _last_stamp = 0

    def __init__(self, temp_dir: Optional[Union[str, Path]] = None, prefix: str = "clipforge"):
        self.temp_dir = Path(temp_dir or tempfile.gettempdir())
        self.prefix = prefix
        self.stamp = self._next_stamp()
        self.token = f"{self.stamp}_{os.getpid()}"
        self.paths: list[Path] = []
        self._logger = get_logger()

    @classmethod
    def _next_stamp(cls) -> int:
        with cls._stamp_lock:
            stamp = max(int(time.time() * 1000), cls._last_stamp + 1)
            cls._last_stamp = stamp
            return stamp

    def allocate(self, purpose: str, ext: str, index: Optional[int] = None) -> Path:
        """Reserve a path and register it for cleanup; the file is not created."""
        name = f"{self.prefix}-{purpose}-{self.token}"
        if index is not None:
            name += f"-{index}"
        path = self.temp_dir / f"{name}.{ext.lstrip('.')}"
        self.paths.append(path)
        return path

    def cleanup(self) -> tuple[int, int]:
        """
        Delete every registered path that exists. Individual failures are
        logged and skipped. Returns (removed, failed).
        """
        removed = failed = 0
        for path in self.paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                failed += 1
                self._logger.warning(f"Failed to delete temp file {path}: {e}")
        self.paths.clear()
        self._logger.log_temp_cleanup(removed, failed)
        return removed, failed

    def __enter__(self) -> TempArtifacts:
        return self

    def __exit__(self, *exc) -> None:
        self.cleanup()


@dataclass
class ExportJob:
    """One export request: a private snapshot plus the artifacts it creates."""

    clips: list[PlacedClip]
    output_path: str
    resolution: Optional[Resolution]
    strategy: ExportStrategy
    artifacts: TempArtifacts = field(default_factory=TempArtifacts)

    @property
    def main_clips(self) -> list[PlacedClip]:
        return sorted((c for c in self.clips if c.track == MAIN_TRACK), key=lambda c: c.start_time)

    @property
    def overlay_clips(self) -> list[PlacedClip]:
        return sorted((c for c in self.clips if c.track == OVERLAY_TRACK), key=lambda c: c.start_time)


def validate_clips(clips: list[PlacedClip]) -> None:
    """Reject snapshots ffmpeg could not render. Raises ExportError."""
    if not clips:
        raise ExportError(ExportErrorKind.EMPTY_TIMELINE, "No clips to export")

    for clip in clips:
        if not clip.file_path:
            raise ExportError(
                ExportErrorKind.INVALID_CLIP, f'Clip "{clip.filename}" has no file path'
            )
        if clip.effective_duration <= 0:
            raise ExportError(
                ExportErrorKind.INVALID_CLIP,
                f'Clip "{clip.filename}" has invalid trim '
                f"(duration: {clip.trim_end - clip.trim_start}s)",
            )


def select_strategy(clips: list[PlacedClip]) -> ExportStrategy:
    """
    Pick how to render a snapshot.

    Without captions a lone main clip is rendered directly and a run of main
    clips is concatenated. Any clip with captions overrides both and forces
    the composite path, even for a single clip, since only the composite
    graph burns subtitles in.
    """
    validate_clips(clips)

    main = [c for c in clips if c.track == MAIN_TRACK]
    overlay = [c for c in clips if c.track == OVERLAY_TRACK]
    if not main:
        raise ExportError(
            ExportErrorKind.NO_MAIN_TRACK_CLIPS,
            "The main track has no clips; overlay clips need a main track to sit on",
        )

    has_captions = any(c.captions for c in clips)
    if overlay or has_captions:
        return ExportStrategy.COMPOSITE
    if len(main) == 1:
        return ExportStrategy.SINGLE
    return ExportStrategy.CONCAT


def track_layout(clips: list[PlacedClip]) -> list[tuple[PlacedClip, float]]:
    """
    Where each clip of a track starts in that track's rendered stream.

    A clip keeps its own start_time when it begins after the previous one
    ends; an overlapping clip is pushed to the end of the previous one.
    Clips must be sorted by start_time.
    """
    layout = []
    cursor = 0.0
    for clip in clips:
        start = clip.start_time if clip.start_time - cursor > GAP_EPSILON else cursor
        layout.append((clip, start))
        cursor = start + clip.effective_duration
    return layout


def stream_end(layout: list[tuple[PlacedClip, float]]) -> float:
    return max((start + clip.effective_duration for clip, start in layout), default=0.0)


def escape_filter_path(path: Union[str, Path]) -> str:
    """Quote a file path for use as a filter option inside -filter_complex."""
    text = str(path).replace("\\", "/").replace(":", "\\:")
    return "'" + text.replace("'", "'\\''") + "'"


class _GraphBuilder:
    """Accumulates filter chains for the composite graph."""

    def __init__(self, settings: CompositeSettings):
        self.settings = settings
        self.chains: list[str] = []

    def add(self, chain: str) -> None:
        self.chains.append(chain)

    def clip_segment(self, index: int, clip: PlacedClip, label: str, width: int, height: int) -> tuple[str, str]:
        start = format_seconds(clip.trim_start)
        end = format_seconds(clip.trim_end)
        video, audio = f"{label}v", f"{label}a"
        self.add(
            f"[{index}:v]trim=start={start}:end={end},setpts=PTS-STARTPTS,"
            f"fps={self.settings.fps},{build_scale_pad_filter(width, height)},format=yuv420p[{video}]"
        )
        self.add(
            f"[{index}:a]atrim=start={start}:end={end},asetpts=PTS-STARTPTS,"
            f"aformat=sample_rates={self.settings.sample_rate}:channel_layouts=stereo[{audio}]"
        )
        return video, audio

    def gap_segment(self, duration: float, label: str, width: int, height: int) -> tuple[str, str]:
        d = format_seconds(duration)
        video, audio = f"{label}v", f"{label}a"
        self.add(
            f"color=c=black:s={width}x{height}:r={self.settings.fps}:d={d},"
            f"format=yuv420p,setsar=1[{video}]"
        )
        self.add(
            f"anullsrc=r={self.settings.sample_rate}:cl=stereo,atrim=duration={d},"
            f"asetpts=PTS-STARTPTS[{audio}]"
        )
        return video, audio

    def track(
        self,
        clips: list[PlacedClip],
        first_input: int,
        tag: str,
        width: int,
        height: int,
    ) -> tuple[str, str, list[tuple[float, float]]]:
        """
        Join a track's clips into one video and one audio stream whose clock
        matches the timeline: gaps before a clip are filled with black and
        silence, and overlapping clips follow the previous one (see track_layout).

        Returns (video_label, audio_label, windows) where windows are the
        (start, end) spans occupied by real clip content.
        """
        segments: list[tuple[str, str]] = []
        windows: list[tuple[float, float]] = []
        cursor = 0.0
        for k, (clip, start) in enumerate(track_layout(clips)):
            if start > cursor:
                segments.append(self.gap_segment(start - cursor, f"{tag}gap{k}", width, height))
            segments.append(self.clip_segment(first_input + k, clip, f"{tag}{k}", width, height))
            windows.append((start, start + clip.effective_duration))
            cursor = start + clip.effective_duration

        if len(segments) == 1:
            video, audio = segments[0]
            return video, audio, windows

        inputs = "".join(f"[{v}][{a}]" for v, a in segments)
        self.add(f"{inputs}concat=n={len(segments)}:v=1:a=1[{tag}v][{tag}a]")
        return f"{tag}v", f"{tag}a", windows

    def render(self) -> str:
        return ";".join(self.chains)


def build_composite_filter(
    main: list[PlacedClip],
    overlay: list[PlacedClip],
    target: Resolution,
    settings: Optional[CompositeSettings] = None,
    main_subtitles: Optional[Union[str, Path]] = None,
    overlay_subtitles: Optional[Union[str, Path]] = None,
) -> tuple[str, str, str]:
    """
    Build the -filter_complex graph for the multi-track export.

    Inputs are expected in order: main clips, then overlay clips, each sorted
    by start time. Returns (graph, video_label, audio_label).
    """
    settings = settings or CompositeSettings()
    graph = _GraphBuilder(settings)

    video, audio, _ = graph.track(main, 0, "m", target.width, target.height)

    if overlay:
        pip_w, pip_h = settings.pip_size(target)
        ovl_video, ovl_audio, windows = graph.track(overlay, len(main), "o", pip_w, pip_h)
        x = target.width - pip_w - settings.pip_margin
        y = settings.pip_margin
        enable = "+".join(
            f"between(t,{format_seconds(start)},{format_seconds(end)})" for start, end in windows
        )
        graph.add(
            f"[{video}][{ovl_video}]overlay=x={x}:y={y}:enable='{enable}':eof_action=pass[pipv]"
        )
        video = "pipv"
        graph.add(f"[{audio}][{ovl_audio}]amix=inputs=2:duration=longest:dropout_transition=0[aout]")
        audio = "aout"

    # Overlay-track captions sit at the top, main-track captions at the bottom.
    subtitle_stages = [
        (overlay_subtitles, "Alignment=8", "subov"),
        (main_subtitles, "Alignment=2", "submv"),
    ]
    for path, style, label in subtitle_stages:
        if path is None:
            continue
        graph.add(
            f"[{video}]subtitles=filename={escape_filter_path(path)}:"
            f"force_style='{style},MarginV=20'[{label}]"
        )
        video = label

    return graph.render(), video, audio


class ExportCompositor:
    """Renders timeline snapshots to a single output file."""

    INTERMEDIATE_EXTENSION = "mp4"

    _active_outputs: set[str] = set()
    _active_lock = threading.Lock()

    def __init__(
        self,
        runner: Optional[FFmpegRunner] = None,
        encoder: Optional[EncoderSettings] = None,
        composite: Optional[CompositeSettings] = None,
        temp_dir: Optional[Union[str, Path]] = None,
        temp_prefix: str = "clipforge",
    ):
        self.runner = runner or FFmpegRunner()
        self.encoder = encoder or EncoderSettings()
        self.composite = composite or CompositeSettings()
        self.temp_dir = temp_dir
        self.temp_prefix = temp_prefix
        self._logger = get_logger()

    @classmethod
    def from_config(cls, config, runner: Optional[FFmpegRunner] = None) -> ExportCompositor:
        """Build a compositor from a Config instance."""
        return cls(
            runner=runner or FFmpegRunner(
                ffmpeg_path=config.get("ffmpeg_path"),
                stderr_tail_lines=config.get("stderr_tail_lines"),
            ),
            encoder=config.encoder_settings,
            composite=config.composite_settings,
            temp_dir=config.get("temp_dir"),
            temp_prefix=config.get("temp_prefix"),
        )

    def export(
        self,
        clips: list[PlacedClip],
        output_path: Union[str, Path],
        resolution: Union[Resolution, str, dict, None] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """
        Export clips to output_path.

        Never raises for expected failures: validation, missing binary,
        ffmpeg errors and cancellation all come back as a failed ExportResult.
        Temp files are removed in every case.
        """
        output_path = str(output_path)
        key = os.path.abspath(output_path)
        with self._active_lock:
            if key in self._active_outputs:
                return ExportResult.failed(
                    ExportError(
                        ExportErrorKind.EXPORT_IN_PROGRESS,
                        f"An export to {output_path} is already running",
                    ),
                    output_path,
                )
            self._active_outputs.add(key)

        started = time.time()
        job: Optional[ExportJob] = None
        try:
            job = self._prepare(clips, output_path, resolution)
            self._logger.log_export_start(
                output_path, job.strategy.value, str(job.resolution or "source")
            )
            handler = {
                ExportStrategy.SINGLE: self._export_single,
                ExportStrategy.CONCAT: self._export_concat,
                ExportStrategy.COMPOSITE: self._export_composite,
            }[job.strategy]
            handler(job, progress_callback, cancel_event)
            result = ExportResult.ok(output_path, job.strategy.value)
        except ExportError as e:
            self._logger.log_export_failure(e)
            result = ExportResult.failed(e, output_path, job.strategy.value if job else None)
        except Exception as e:
            self._logger.exception(f"Export failed with exception: {e}")
            result = ExportResult.failed(
                ExportError(ExportErrorKind.INTERNAL, f"Export failed: {e}"),
                output_path,
                job.strategy.value if job else None,
            )
        finally:
            if job is not None:
                job.artifacts.cleanup()
            with self._active_lock:
                self._active_outputs.discard(key)

        self._logger.log_export_complete(output_path, time.time() - started, result.success)
        return result

    def _prepare(self, clips: list[PlacedClip], output_path: str, resolution) -> ExportJob:
        snapshot = [c.copy() for c in clips]
        try:
            target = Resolution.parse(resolution)
        except (ValueError, KeyError, TypeError) as e:
            raise ExportError(ExportErrorKind.INVALID_RESOLUTION, str(e)) from e
        strategy = select_strategy(snapshot)
        return ExportJob(
            clips=snapshot,
            output_path=output_path,
            resolution=target,
            strategy=strategy,
            artifacts=TempArtifacts(self.temp_dir, self.temp_prefix),
        )

    def _export_single(self, job: ExportJob, progress_callback, cancel_event) -> None:
        clip = job.clips[0]
        args = build_clip_command(clip, job.output_path, job.resolution, self.encoder)
        self.runner.run(args, job.output_path, clip.effective_duration, progress_callback, cancel_event)

    def _export_concat(self, job: ExportJob, progress_callback, cancel_event) -> None:
        main = job.main_clips

        # Phase A: trimmed clips become intermediates, one at a time. No progress
        # is reported here; the caller only sees the final concat.
        paths = []
        for index, clip in enumerate(main):
            if not clip.is_trimmed:
                paths.append(clip.file_path)
                continue
            temp = job.artifacts.allocate("trim", self.INTERMEDIATE_EXTENSION, index)
            self._logger.debug(f"Trimming {clip.filename} to {temp}")
            args = build_clip_command(clip, str(temp), None, self.encoder)
            self.runner.run(args, str(temp), clip.effective_duration, None, cancel_event)
            paths.append(str(temp))

        # Phase B: manifest in timeline order.
        manifest = job.artifacts.allocate("filelist", "txt")
        manifest.write_text(manifest_content(paths), encoding="utf-8")
        self._logger.log_file_operation("write", str(manifest))

        # Phase C: one concat encode.
        total = sum(c.effective_duration for c in main)
        args = build_concat_command(str(manifest), job.output_path, job.resolution, self.encoder)
        self.runner.run(args, job.output_path, total, progress_callback, cancel_event)

    def _export_composite(self, job: ExportJob, progress_callback, cancel_event) -> None:
        main, overlay = job.main_clips, job.overlay_clips
        target = job.resolution or self._source_resolution(main[0])

        layouts = {MAIN_TRACK: track_layout(main), OVERLAY_TRACK: track_layout(overlay)}

        subtitles = {}
        for track, layout in layouts.items():
            # Cues follow the clip to where it actually plays in the stream.
            cues = [
                cue
                for clip, start in layout
                for cue in visible_captions(clip.copy(start_time=start))
            ]
            if cues:
                path = job.artifacts.allocate("subs", "srt", track)
                write_srt(cues, path)
                self._logger.log_file_operation("write", str(path))
                subtitles[track] = path

        graph, video, audio = build_composite_filter(
            main,
            overlay,
            target,
            self.composite,
            main_subtitles=subtitles.get(MAIN_TRACK),
            overlay_subtitles=subtitles.get(OVERLAY_TRACK),
        )

        args: list[str] = []
        for clip in main + overlay:
            args.extend(["-i", clip.file_path])
        args.extend([
            "-filter_complex", graph,
            "-map", f"[{video}]",
            "-map", f"[{audio}]",
        ])
        args.extend(self.encoder.codec_args())
        args.extend(["-y", job.output_path])

        total = max(stream_end(layout) for layout in layouts.values())
        self.runner.run(args, job.output_path, total, progress_callback, cancel_event)

    def _source_resolution(self, clip: PlacedClip) -> Resolution:
        meta = clip.metadata
        if meta is not None and meta.width > 0 and meta.height > 0:
            return Resolution(_even(meta.width), _even(meta.height))
        return self.composite.fallback_resolution
