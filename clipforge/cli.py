"""
Command line interface: export a saved project or show what it contains.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from .core.config import Config, ProjectManager
from .core.export import ExportCompositor
from .core.ffmpeg import FFmpegRunner
from .core.models import ExportProgress
from .core.timeline import Timeline
from .core.geometry import NUM_TRACKS
from .utils.helpers import format_duration, format_size
from .utils.logger import get_logger

TRACK_NAMES = {0: "Main", 1: "Overlay"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clipforge", description="ClipForge timeline tools")
    parser.add_argument("--config", type=Path, help="Path to a JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Render a project to a video file")
    export.add_argument("project", help=f"Project file ({Config.PROJECT_EXTENSION})")
    export.add_argument("output", help="Output video path")
    export.add_argument(
        "-r", "--resolution",
        help="source, 4k, 1080p, 720p, 480p or WxH (default from config)",
    )
    export.add_argument("--ffmpeg", help="Path to the ffmpeg binary")

    info = sub.add_parser("info", help="List the clips of a project")
    info.add_argument("project", help=f"Project file ({Config.PROJECT_EXTENSION})")
    return parser


def _load(path: str) -> Optional[Timeline]:
    timeline = ProjectManager.load_project(path)
    if timeline is None:
        print(f"Could not load project: {path}", file=sys.stderr)
    return timeline


def _print_progress(progress: ExportProgress) -> None:
    print(
        f"\r{progress.percentage:3d}%  "
        f"{format_duration(progress.current_time)} / {format_duration(progress.total_duration)}",
        end="",
        flush=True,
    )


def cmd_export(args: argparse.Namespace, config: Config) -> int:
    timeline = _load(args.project)
    if timeline is None:
        return 1

    runner = FFmpegRunner(
        ffmpeg_path=args.ffmpeg or config.get("ffmpeg_path"),
        stderr_tail_lines=config.get("stderr_tail_lines"),
    )
    compositor = ExportCompositor.from_config(config, runner=runner)
    resolution = args.resolution if args.resolution is not None else config.default_resolution

    result = compositor.export(
        timeline.snapshot(), args.output, resolution, progress_callback=_print_progress
    )
    print()
    if result.success:
        print(f"Exported {args.output} ({result.strategy})")
        return 0
    print(f"Export failed: {result.error}", file=sys.stderr)
    return 1


def cmd_info(args: argparse.Namespace, config: Config) -> int:
    timeline = _load(args.project)
    if timeline is None:
        return 1

    for track in range(NUM_TRACKS):
        clips = timeline.track_clips(track)
        print(f"{TRACK_NAMES.get(track, track)} track: {len(clips)} clip(s)")
        for clip in clips:
            line = (
                f"  {clip.id}  {clip.filename}  at {clip.start_time:.2f}s  "
                f"[{clip.trim_start:.2f}-{clip.trim_end:.2f}] of {clip.duration:.2f}s"
            )
            if clip.metadata is not None:
                line += f"  {clip.metadata.width}x{clip.metadata.height} {format_size(clip.metadata.file_size)}"
            if clip.captions:
                line += f"  {len(clip.captions)} caption(s)"
            print(line)
    print(f"Total duration: {format_duration(timeline.total_duration())}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = get_logger()
    config = Config(config_file=args.config) if args.config else Config()
    logger.configure(config.get("log_level"), verbose=args.verbose)

    handlers = {"export": cmd_export, "info": cmd_info}
    return handlers[args.command](args, config)


if __name__ == "__main__":
    sys.exit(main())
