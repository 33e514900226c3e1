"""
Frame extraction service for screen recordings.

This module turns a video file plus a point in time into a JPEG using FFmpeg:
- Capability check (is the ffmpeg binary usable at all)
- Best-effort duration probing with ffprobe
- Timestamp clamping into the playable range
- Extraction with a single fallback attempt at the default timestamp

Extraction never returns a path to a missing or empty file. Output is written
to a hidden temporary file and moved over the final name only once it has
been validated, so a failed regeneration keeps the previous screenshot.
"""

import os
import json
import math
import subprocess
from enum import Enum
from typing import Optional

from framegrab.config import Settings, parse_size
from framegrab.exceptions import ExtractionFailedError, SourceNotFoundError, ToolUnavailableError
from framegrab.services.path_resolver import PathResolver
from framegrab.utils.logging_utils import get_job_logger, get_logger
from framegrab.utils.timestamp_utils import (
    format_ffmpeg_timestamp,
    is_finite_number,
    parse_timestamp_to_seconds,
)


logger = get_logger("ffmpeg_service")

DEFAULT_VIDEO_DURATION_SECONDS = 60.0
MINIMUM_TIMESTAMP_SECONDS = 1.0
MAX_DURATION_RATIO = 0.95
DEFAULT_THUMBNAIL_TIMESTAMP = 2.0
DEFAULT_SCREENSHOT_TIMESTAMP = 0.0
DEFAULT_THUMBNAIL_SIZE = "640x400"
DEFAULT_SCREENSHOT_SIZE = "1920x1080"

# Errors a single ffmpeg attempt can raise; anything else is a bug and propagates
ATTEMPT_ERRORS = (RuntimeError, OSError, subprocess.SubprocessError)


class ExtractionMode(str, Enum):
    THUMBNAIL = "thumbnail"
    EVENT_FRAME = "event-frame"


def check_ffmpeg_installed(ffmpeg_binary: str = "ffmpeg", timeout: float = 10) -> bool:
    """
    Run `ffmpeg -version` and report whether the binary is usable.

    Returns:
        True if the binary ran and exited with code 0, False otherwise
        (missing binary, permission error, timeout, non-zero exit).
    """
    try:
        result = subprocess.run(
            [ffmpeg_binary, '-version'],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"FFmpeg check failed for '{ffmpeg_binary}': {e}")
        return False

    if result.returncode != 0:
        logger.error(f"FFmpeg check exited with code {result.returncode}: {result.stderr.strip()}")
        return False

    version_line = result.stdout.splitlines()[0] if result.stdout else "unknown version"
    logger.info(f"FFmpeg found: {version_line}")
    return True


def resolve_safe_timestamp(
    timestamp: float,
    duration: float,
    minimum: float = MINIMUM_TIMESTAMP_SECONDS,
    ratio: float = MAX_DURATION_RATIO
) -> float:
    """
    Clamp a relative timestamp into the playable range of a video.

    - timestamp <= 0          -> minimum (never extract at 0, some encoders emit a black keyframe)
    - timestamp >= duration   -> max(duration * ratio, minimum)
    - otherwise               -> timestamp unchanged

    Examples:
        resolve_safe_timestamp(45, 30)  -> 28.5
        resolve_safe_timestamp(0, 30)   -> 1.0
        resolve_safe_timestamp(12, 30)  -> 12
    """
    if timestamp <= 0:
        return minimum
    if timestamp >= duration:
        return max(duration * ratio, minimum)
    return timestamp


def run_ffmpeg_extraction(
    video_path: str,
    timestamp_seconds: float,
    output_path: str,
    size: str = DEFAULT_SCREENSHOT_SIZE,
    quality: int = 2,
    ffmpeg_binary: str = "ffmpeg",
    timeout: Optional[float] = None
) -> str:
    """
    Extract single frame from video using FFmpeg.

    Args:
        video_path: Path to the video file
        timestamp_seconds: Timestamp to extract (in seconds)
        output_path: Path where the JPEG should be saved
        size: Output size as WIDTHxHEIGHT
        quality: JPEG quality (1-31, lower=better, default=2)
        ffmpeg_binary: ffmpeg executable
        timeout: Seconds before the process is killed; None waits indefinitely

    Returns:
        output_path

    Raises:
        RuntimeError: If FFmpeg exits non-zero or the output is missing/empty
        subprocess.TimeoutExpired: If timeout elapses
        OSError: If the binary cannot be executed
    """
    width, height = parse_size(size)
    cmd = [
        ffmpeg_binary,
        '-ss', format_ffmpeg_timestamp(timestamp_seconds),  # Seek position
        '-i', video_path,                                   # Input file
        '-frames:v', '1',                                   # Extract 1 frame
        '-vf', f'scale={width}:{height}',                   # Output size
        '-q:v', str(quality),                               # JPEG quality (1-31, lower=better)
        '-y',                                               # Overwrite output
        output_path
    ]

    result = subprocess.run(
        cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", timeout=timeout
    )

    if result.returncode != 0:
        raise RuntimeError(f"FFmpeg failed: {result.stderr.strip()[-500:]}")

    if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
        raise RuntimeError(f"Generated image at {output_path} is empty or doesn't exist")

    return output_path


class FrameExtractor:
    """Produces thumbnails and event frames from recordings with FFmpeg."""

    def __init__(
        self,
        resolver: PathResolver,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        timeout: Optional[float] = None,
        default_duration: float = DEFAULT_VIDEO_DURATION_SECONDS,
        minimum_timestamp: float = MINIMUM_TIMESTAMP_SECONDS,
        max_duration_ratio: float = MAX_DURATION_RATIO,
        thumbnail_timestamp: float = DEFAULT_THUMBNAIL_TIMESTAMP,
        default_timestamp: float = DEFAULT_SCREENSHOT_TIMESTAMP,
        thumbnail_size: str = DEFAULT_THUMBNAIL_SIZE,
        screenshot_size: str = DEFAULT_SCREENSHOT_SIZE,
        quality: int = 2,
    ):
        self.resolver = resolver
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self.timeout = timeout
        self.default_duration = default_duration
        self.minimum_timestamp = minimum_timestamp
        self.max_duration_ratio = max_duration_ratio
        self.thumbnail_timestamp = thumbnail_timestamp
        self.default_timestamp = default_timestamp
        self.thumbnail_size = thumbnail_size
        self.screenshot_size = screenshot_size
        self.quality = quality
        self.installed = False

    @classmethod
    def from_settings(cls, settings: Settings, resolver: PathResolver) -> "FrameExtractor":
        return cls(
            resolver,
            ffmpeg_binary=settings.ffmpeg_binary,
            ffprobe_binary=settings.ffprobe_binary,
            timeout=settings.ffmpeg_timeout_seconds,
            default_duration=settings.default_video_duration_seconds,
            minimum_timestamp=settings.minimum_timestamp_seconds,
            max_duration_ratio=settings.max_duration_ratio,
            thumbnail_timestamp=parse_timestamp_to_seconds(settings.thumbnail_timestamp),
            default_timestamp=settings.default_screenshot_timestamp,
            thumbnail_size=settings.thumbnail_size,
            screenshot_size=settings.screenshot_size,
            quality=settings.jpeg_quality,
        )

    def set_installed(self, installed: bool) -> None:
        self.installed = installed
        if not installed:
            logger.error(f"FFmpeg binary not found at '{self.ffmpeg_binary}'. Media processing will not work.")
            return
        logger.info("FFmpeg found. Media processing ready.")

    def check_availability(self, video_path: str) -> None:
        """
        Raise before touching ffmpeg if the job cannot possibly succeed.

        Raises:
            SourceNotFoundError: video_path does not exist
            ToolUnavailableError: the capability check has not passed
        """
        if not os.path.exists(video_path):
            raise SourceNotFoundError(video_path)
        if not self.installed:
            raise ToolUnavailableError(self.ffmpeg_binary)

    def probe_duration(self, video_path: str) -> float:
        """
        Probe the video duration in seconds with ffprobe.

        Best effort: any failure (ffprobe missing, non-zero exit, unparsable
        output, "N/A" duration as written by browser MediaRecorder webm files)
        returns the configured default duration instead of raising. Not
        cached, every call re-probes.
        """
        cmd = [
            self.ffprobe_binary,
            '-v', 'error',
            '-show_entries', 'format=duration',
            '-of', 'json',
            video_path
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", timeout=self.timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not probe video duration for {video_path}: {e}")
            return self.default_duration

        if result.returncode != 0:
            logger.warning(f"Could not probe video duration for {video_path}: {result.stderr.strip()}")
            return self.default_duration

        try:
            duration = float(json.loads(result.stdout)["format"]["duration"])
        except (ValueError, TypeError, KeyError):
            logger.warning(f"Video duration not found in metadata for {video_path}, using default")
            return self.default_duration

        if not math.isfinite(duration) or duration <= 0:
            logger.warning(f"Invalid video duration {duration} for {video_path}, using default")
            return self.default_duration

        return duration

    def extract_thumbnail(self, video_path: str, recording_id: str) -> str:
        """
        Extract the recording thumbnail at the nominal thumbnail timestamp.

        Returns:
            Absolute path of {thumbnail_dir}/{recording_id}.jpg

        Raises:
            SourceNotFoundError, ToolUnavailableError, ExtractionFailedError
        """
        self.check_availability(video_path)

        output_path = self.resolver.resolve_thumbnail_path(recording_id)
        try:
            return self._extract(video_path, output_path, self.thumbnail_timestamp, self.thumbnail_size)
        except ATTEMPT_ERRORS as e:
            logger.error(f"Error generating thumbnail for recording {recording_id}: {e}")
            raise ExtractionFailedError(
                recording_id, self.thumbnail_timestamp, ExtractionMode.THUMBNAIL.value, e
            ) from e

    def extract_frame_at(self, video_path: str, event_id: str, timestamp) -> str:
        """
        Extract the frame for an event at a recording-relative timestamp.

        Workflow:
        1. Fail fast on missing source or missing ffmpeg
        2. Non-finite timestamp -> extract at the default timestamp, no clamping
        3. Probe duration (default on failure) and clamp the timestamp
        4. Extract; on error or empty output retry exactly once at the default timestamp
        5. Raise ExtractionFailedError if the fallback fails too

        Returns:
            Absolute path of {screenshot_dir}/{event_id}.jpg (exists, non-empty)

        Raises:
            SourceNotFoundError, ToolUnavailableError, ExtractionFailedError
        """
        self.check_availability(video_path)

        log = get_job_logger(event_id, logger)
        output_path = self.resolver.resolve_screenshot_path(
            self.resolver.build_file_name(event_id, ".jpg")
        )

        if not is_finite_number(timestamp):
            log.warning(f"Invalid timestamp {timestamp!r}. Using default timestamp {self.default_timestamp}s.")
            safe_timestamp = self.default_timestamp
        else:
            duration = self.probe_duration(video_path)
            safe_timestamp = resolve_safe_timestamp(
                timestamp, duration, self.minimum_timestamp, self.max_duration_ratio
            )
            if timestamp <= 0:
                log.warning(f"Timestamp is zero or negative: {timestamp}. Using {safe_timestamp}s.")
            elif timestamp >= duration:
                log.warning(
                    f"Timestamp exceeds video duration: {timestamp}s >= {duration}s. "
                    f"Using {safe_timestamp:.3f}s."
                )

        log.info(f"Generating screenshot at timestamp: {format_ffmpeg_timestamp(safe_timestamp)}s")

        try:
            return self._extract(video_path, output_path, safe_timestamp, self.screenshot_size)
        except ATTEMPT_ERRORS as e:
            log.error(f"Failed to generate screenshot: {e}")
            log.warning(f"Falling back to default timestamp {self.default_timestamp}s")

        try:
            return self._extract(video_path, output_path, self.default_timestamp, self.screenshot_size)
        except ATTEMPT_ERRORS as fallback_error:
            log.error(f"Fallback screenshot failed: {fallback_error}")
            raise ExtractionFailedError(
                event_id, safe_timestamp, ExtractionMode.EVENT_FRAME.value, fallback_error
            ) from fallback_error

    def _extract(self, video_path: str, output_path: str, timestamp: float, size: str) -> str:
        directory, filename = os.path.split(output_path)
        stem, extension = os.path.splitext(filename)
        # Leading dot keeps the partial file out of id-prefix lookups
        partial_path = os.path.join(directory, f".{stem}.partial{extension}")
        try:
            run_ffmpeg_extraction(
                video_path,
                timestamp,
                partial_path,
                size=size,
                quality=self.quality,
                ffmpeg_binary=self.ffmpeg_binary,
                timeout=self.timeout
            )
            os.replace(partial_path, output_path)
        finally:
            if os.path.exists(partial_path):
                os.remove(partial_path)
        return output_path
