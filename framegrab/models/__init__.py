"""
Models package for API request/response validation.

This package contains Pydantic models used throughout the application
for validating API requests and responses.
"""

from .schemas import (
    EventScreenshotJob,
    EventScreenshotResult,
    BatchScreenshotRequest,
    BatchScreenshotResponse,
    RegenerateScreenshotRequest,
    ScreenshotResponse,
    RecordingIngestResponse,
    FfmpegStatusResponse,
)

__all__ = [
    "EventScreenshotJob",
    "EventScreenshotResult",
    "BatchScreenshotRequest",
    "BatchScreenshotResponse",
    "RegenerateScreenshotRequest",
    "ScreenshotResponse",
    "RecordingIngestResponse",
    "FfmpegStatusResponse",
]
