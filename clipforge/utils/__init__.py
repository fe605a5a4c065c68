"""
Utility functions
"""

from .helpers import format_duration, format_size, format_time

__all__ = ["format_duration", "format_size", "format_time"]
