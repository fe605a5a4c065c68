"""
Configuration management for ClipForge
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from .commands import EncoderSettings
from .export import CompositeSettings
from .models import Resolution
from .timeline import Timeline
from ..utils.logger import get_logger


class Config:
    """Application configuration manager."""

    DEFAULT_CONFIG_FILE = Path.home() / ".clipforge_config.json"
    PROJECT_EXTENSION = ".cfproj"

    # Default values
    DEFAULTS = {
        "last_directory": str(Path.home()),
        "log_level": "info",
        # Transcoding engine
        "ffmpeg_path": None,  # None = look up "ffmpeg" on PATH
        "stderr_tail_lines": 20,
        "temp_dir": None,  # None = system temp directory
        "temp_prefix": "clipforge",
        # Output encoding
        "default_resolution": "source",
        "video_codec": "libx264",
        "preset": "medium",  # x264 preset
        "crf": 23,
        "audio_codec": "aac",
        "audio_bitrate": "192k",
        # Picture-in-picture composite
        "pip_width_ratio": 0.22,
        "pip_margin": 20,
        "composite_fps": 30,
        "sample_rate": 48000,
        "fallback_resolution": "1920x1080",
    }

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or self.DEFAULT_CONFIG_FILE
        self._data: dict[str, Any] = {}
        self._logger = get_logger()
        self.load()

    def load(self) -> None:
        """Load configuration from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    self._data = json.load(f)
                self._logger.debug(f"Configuration loaded from {self.config_file}")
            except json.JSONDecodeError as e:
                self._logger.warning(f"Invalid JSON in config file: {e}")
                self._data = {}
            except OSError as e:
                self._logger.warning(f"Could not read config file: {e}")
                self._data = {}
        else:
            self._data = {}
            self._logger.debug("No existing config file, using defaults")

    def save(self) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            self._logger.debug("Configuration saved")
        except OSError as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        if default is None:
            default = self.DEFAULTS.get(key)
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value and save."""
        self._data[key] = value
        self.save()

    @property
    def last_directory(self) -> str:
        """Get last used directory."""
        path = self.get("last_directory")
        if path and os.path.isdir(path):
            return path
        return str(Path.home())

    @last_directory.setter
    def last_directory(self, value: str) -> None:
        """Set last used directory."""
        if os.path.isdir(value):
            self.set("last_directory", value)

    @property
    def default_resolution(self) -> Optional[Resolution]:
        """Configured export size; None means keep the source size."""
        try:
            return Resolution.parse(self.get("default_resolution"))
        except ValueError as e:
            self._logger.warning(f"Ignoring invalid default_resolution: {e}")
            return None

    @property
    def encoder_settings(self) -> EncoderSettings:
        return EncoderSettings.from_dict({
            key: self.get(key)
            for key in ("video_codec", "preset", "crf", "audio_codec", "audio_bitrate")
        })

    @property
    def composite_settings(self) -> CompositeSettings:
        try:
            fallback = Resolution.parse(self.get("fallback_resolution"))
        except ValueError as e:
            self._logger.warning(f"Ignoring invalid fallback_resolution: {e}")
            fallback = None
        return CompositeSettings(
            pip_width_ratio=float(self.get("pip_width_ratio")),
            pip_margin=int(self.get("pip_margin")),
            fps=int(self.get("composite_fps")),
            sample_rate=int(self.get("sample_rate")),
            fallback_resolution=fallback or CompositeSettings().fallback_resolution,
        )


class ProjectManager:
    """Manages project file operations."""

    @staticmethod
    def save_project(timeline: Timeline, file_path: str) -> bool:
        """
        Save a timeline to file.
        Returns True on success, False on failure.
        """
        logger = get_logger()
        try:
            data = timeline.to_dict()
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            logger.log_file_operation("save", file_path, success=True)
            logger.info(f"Project saved: {file_path}")
            return True
        except (OSError, TypeError) as e:
            logger.log_file_operation("save", file_path, success=False)
            logger.error(f"Failed to save project: {e}")
            return False

    @staticmethod
    def load_project_data(file_path: str) -> Optional[dict]:
        """
        Load project data from file.
        Returns dict on success, None on failure.
        """
        logger = get_logger()
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            logger.log_file_operation("load", file_path, success=True)
            logger.info(f"Project loaded: {file_path}")
            return data
        except json.JSONDecodeError as e:
            logger.log_file_operation("load", file_path, success=False)
            logger.error(f"Invalid project file format: {e}")
            return None
        except OSError as e:
            logger.log_file_operation("load", file_path, success=False)
            logger.error(f"Failed to load project: {e}")
            return None

    @classmethod
    def load_project(cls, file_path: str) -> Optional[Timeline]:
        """Load and rebuild a timeline. Returns None if the file is unusable."""
        data = cls.load_project_data(file_path)
        if data is None:
            return None
        try:
            return Timeline.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            get_logger().error(f"Invalid project contents in {file_path}: {e}")
            return None
