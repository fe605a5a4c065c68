#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ClipForge - two-track video clip editor core

Entry point for the command line tools.

Usage:
    python main.py export project.cfproj output.mp4 [--resolution 720p]
    python main.py info project.cfproj

Features:
    - Two-track timeline: trim, split, move and delete clips
    - Export by direct encode, concat or picture-in-picture composite
    - Burned-in captions per track
    - Streamed progress with guaranteed temp file cleanup

Requires:
    - Python 3.10+
    - ffmpeg on PATH (or configured via ffmpeg_path)
"""

import sys

from clipforge.cli import main as cli_main
from clipforge.utils.logger import get_logger


def main():
    """Main entry point."""
    logger = get_logger()
    logger.enable_file_logging()
    logger.prune_logs()
    logger.info("ClipForge starting...")

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
