"""
Pydantic models for request/response validation.

This module contains all Pydantic BaseModel schemas used for API request
and response validation and for the batch screenshot service.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class EventScreenshotJob(BaseModel):
    """One event of a screenshot batch: absolute timestamps in ms, resolved against the recording start."""
    event_id: str
    video_path: str
    timestamp: float = Field(..., description="Absolute event timestamp (ms)")
    recording_start_time: float = Field(0, description="Absolute recording start time (ms)")


class EventScreenshotResult(BaseModel):
    """Result for individual event: success, relative timestamp, path and URL or error."""
    event_id: str
    success: bool
    relative_timestamp: float
    file_path: Optional[str] = None
    screenshot_url: Optional[str] = None
    error: Optional[str] = None


class BatchScreenshotRequest(BaseModel):
    """Request model for generating screenshots for many events of one recording."""
    start_time: float = Field(..., description="Recording start time (ms)")
    events: Dict[str, float] = Field(..., description="Event id -> absolute event timestamp (ms)", min_length=1)


class BatchScreenshotResponse(BaseModel):
    """Response with stats and per-event results: total, succeeded, failed, results[]."""
    recording_id: str
    total: int
    succeeded: int
    failed: int
    results: List[EventScreenshotResult]


class RegenerateScreenshotRequest(BaseModel):
    """Request model for regenerating one event screenshot after its timestamp changed."""
    start_time: float = Field(..., description="Recording start time (ms)")
    timestamp: float = Field(..., description="New absolute event timestamp (ms)")


class ScreenshotResponse(BaseModel):
    """Response after generating or uploading a single screenshot."""
    event_id: str
    screenshot_url: str
    file_path: str
    size_bytes: int
    relative_timestamp: Optional[float] = None


class RecordingIngestResponse(BaseModel):
    """Response after saving a recording video; thumbnail_path is None if generation failed."""
    recording_id: str
    video_path: str
    thumbnail_path: Optional[str] = None


class FfmpegStatusResponse(BaseModel):
    """Capability flag state."""
    installed: bool
    checked: bool
    ffmpeg_binary: str
