"""
Timestamp utility functions for parsing and formatting timestamps.

This module provides utilities for:
- Parsing "HH:MM:SS[.mmm]" or float timestamps to seconds
- Converting absolute event timestamps (ms) to recording-relative seconds
- Formatting seconds for the ffmpeg -ss argument
"""

import math


def parse_timestamp_to_seconds(timestamp: str) -> float:
    """
    Auto-detect and parse timestamp to seconds.
    Supports: "00:00:02", SRT "00:01:30,500" or float "90.5"
    """
    timestamp = timestamp.strip()

    # Try HH:MM:SS,mmm or HH:MM:SS.mmm
    if ':' in timestamp:
        timestamp = timestamp.replace(',', '.')
        parts = timestamp.split(':')
        if len(parts) == 3:
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = float(parts[2])
            return hours * 3600 + minutes * 60 + seconds

    # Try float seconds
    return float(timestamp)


def is_finite_number(value) -> bool:
    """True for int/float values that are neither NaN nor infinite (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def relative_timestamp_seconds(event_timestamp_ms, recording_start_ms) -> float:
    """
    Convert an absolute event timestamp to seconds since the recording started.

    relative = max(0, event - start) / 1000. Non-finite or negative event
    timestamps are treated as 0 first, so clock skew never yields a negative
    offset.

    Examples:
        relative_timestamp_seconds(45000, 0) -> 45.0
        relative_timestamp_seconds(-500, 0) -> 0.0
        relative_timestamp_seconds(1700000002500, 1700000000000) -> 2.5
    """
    if not is_finite_number(event_timestamp_ms) or event_timestamp_ms < 0:
        event_timestamp_ms = 0
    if not is_finite_number(recording_start_ms):
        recording_start_ms = 0
    return max(0, event_timestamp_ms - recording_start_ms) / 1000


def format_ffmpeg_timestamp(seconds: float) -> str:
    """Format seconds with millisecond precision for ffmpeg -ss: 28.5 -> "28.500"."""
    return f"{seconds:.3f}"
