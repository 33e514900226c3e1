"""
Recording orchestration service.

This module sits at the boundary between callers (API routers, workers) and
the media facade:
- Converts absolute event timestamps to recording-relative seconds
- Generates screenshots for a batch of events, continuing past failures
- Regenerates a single event screenshot, propagating typed errors
- Ingests and removes recording media

Batch Processing Flow:
1. For each event, compute max(0, timestamp - start) / 1000
2. Extract the frame through MediaService (clamp + fallback happen there)
3. Record success or the error message, then move on to the next event
4. Return a summary with per-event results
"""

import os
from typing import Iterable, List

from framegrab.exceptions import MediaError
from framegrab.models import (
    BatchScreenshotResponse,
    EventScreenshotJob,
    EventScreenshotResult,
    RecordingIngestResponse,
    ScreenshotResponse,
)
from framegrab.services.media_service import MediaService
from framegrab.utils.logging_utils import get_job_logger, get_logger
from framegrab.utils.timestamp_utils import relative_timestamp_seconds


logger = get_logger("recording_service")


def screenshot_url(recording_id: str, event_id: str) -> str:
    """URL under which the API serves an event screenshot."""
    return f"/recordings/{recording_id}/events/{event_id}/screenshot"


# =============================================================================
# Event Screenshots
# =============================================================================

async def generate_event_screenshots(
    media: MediaService,
    recording_id: str,
    jobs: List[EventScreenshotJob]
) -> BatchScreenshotResponse:
    """
    Generate screenshots for a batch of events.

    Events are processed sequentially. A failure for one event is logged and
    recorded in its result, it never aborts the rest of the batch.

    Example Response:
        {
            "recording_id": "rec-1",
            "total": 2, "succeeded": 1, "failed": 1,
            "results": [
                {"event_id": "e1", "success": true, "relative_timestamp": 2.5,
                 "file_path": "uploads/event-screenshots/e1.jpg",
                 "screenshot_url": "/recordings/rec-1/events/e1/screenshot"},
                {"event_id": "e2", "success": false, "relative_timestamp": 0.0,
                 "error": "Source video not found: ..."}
            ]
        }
    """
    log = get_job_logger(recording_id, logger)
    log.info(f"Processing batch of {len(jobs)} event screenshot(s)")

    results = []
    for job in jobs:
        relative = relative_timestamp_seconds(job.timestamp, job.recording_start_time)
        try:
            file_path = await media.generate_frame_at_timestamp(job.video_path, job.event_id, relative)
        except Exception as e:
            log.warning(f"Failed to generate screenshot for event {job.event_id}: {e}")
            results.append(EventScreenshotResult(
                event_id=job.event_id,
                success=False,
                relative_timestamp=relative,
                error=str(e)
            ))
            continue

        results.append(EventScreenshotResult(
            event_id=job.event_id,
            success=True,
            relative_timestamp=relative,
            file_path=media.resolver.relative_path(file_path),
            screenshot_url=screenshot_url(recording_id, job.event_id)
        ))

    succeeded = sum(1 for r in results if r.success)
    failed = len(results) - succeeded
    log.info(f"Batch complete - succeeded:{succeeded} failed:{failed}")

    return BatchScreenshotResponse(
        recording_id=recording_id,
        total=len(jobs),
        succeeded=succeeded,
        failed=failed,
        results=results
    )


async def regenerate_event_screenshot(
    media: MediaService,
    recording_id: str,
    event_id: str,
    video_path: str,
    start_time: float,
    timestamp: float
) -> ScreenshotResponse:
    """
    Regenerate one event screenshot in place (user-initiated).

    Raises:
        SourceNotFoundError, ToolUnavailableError, ExtractionFailedError
    """
    relative = relative_timestamp_seconds(timestamp, start_time)
    file_path = await media.generate_frame_at_timestamp(video_path, event_id, relative)

    return ScreenshotResponse(
        event_id=event_id,
        screenshot_url=screenshot_url(recording_id, event_id),
        file_path=media.resolver.relative_path(file_path),
        size_bytes=os.path.getsize(file_path),
        relative_timestamp=relative
    )


# =============================================================================
# Recording Lifecycle
# =============================================================================

async def ingest_recording(
    media: MediaService,
    recording_id: str,
    data: bytes,
    original_filename: str
) -> RecordingIngestResponse:
    """
    Save an uploaded recording and generate its thumbnail.

    A thumbnail failure is logged and leaves thumbnail_path as None; the
    upload itself still succeeds.

    Raises:
        PersistFailedError: The video could not be written
    """
    log = get_job_logger(recording_id, logger)
    video_path = media.save_recording(recording_id, data, original_filename)

    thumbnail_path = None
    try:
        thumbnail_path = media.resolver.relative_path(
            await media.generate_thumbnail(video_path, recording_id)
        )
    except MediaError as e:
        log.warning(f"Failed to generate thumbnail for recording {recording_id}: {e}")

    return RecordingIngestResponse(
        recording_id=recording_id,
        video_path=media.resolver.relative_path(video_path),
        thumbnail_path=thumbnail_path
    )


def remove_recording_media(media: MediaService, recording_id: str, event_ids: Iterable[str]) -> None:
    """Delete all screenshots of the given events, then the video and thumbnail. Never raises for missing files."""
    media.delete_all_screenshots_for(recording_id, event_ids)
    media.delete_recording_files(recording_id)
