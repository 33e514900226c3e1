"""
Screenshot router for event screenshots.

This module handles event screenshot generation, upload, serving and deletion.
Screenshots are addressed by event id; the recording id in the path selects
the source video.
"""

import os
from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response

from framegrab.dependencies import get_media_service, verify_api_key
from framegrab.models import (
    BatchScreenshotRequest,
    BatchScreenshotResponse,
    EventScreenshotJob,
    RegenerateScreenshotRequest,
    ScreenshotResponse,
)
from framegrab.services.media_service import MediaService
from framegrab.services.recording_service import (
    generate_event_screenshots,
    regenerate_event_screenshot,
    screenshot_url,
)


router = APIRouter(prefix="/recordings/{recording_id}/events", tags=["Screenshot"])


def _require_video(media: MediaService, recording_id: str) -> str:
    video_path = media.find_recording(recording_id)
    if not video_path:
        raise HTTPException(status_code=404, detail=f"Recording video not found: {recording_id}")
    return video_path


@router.post("/screenshots", response_model=BatchScreenshotResponse)
async def create_event_screenshots(
    recording_id: str,
    request: BatchScreenshotRequest = Body(...),
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> BatchScreenshotResponse:
    """
    Generate screenshots for every event in the request.

    - Event timestamps are absolute (ms); start_time is the recording start (ms)
    - Events are processed one at a time; failures are reported per event
    - Always 200 once the recording video exists, check `failed` in the response
    """
    video_path = _require_video(media, recording_id)
    jobs = [
        EventScreenshotJob(
            event_id=event_id,
            video_path=video_path,
            timestamp=timestamp,
            recording_start_time=request.start_time
        )
        for event_id, timestamp in request.events.items()
    ]
    return await generate_event_screenshots(media, recording_id, jobs)


@router.post("/{event_id}/screenshot/regenerate", response_model=ScreenshotResponse)
async def regenerate_screenshot(
    recording_id: str,
    event_id: str,
    request: RegenerateScreenshotRequest = Body(...),
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> ScreenshotResponse:
    """
    Regenerate one event screenshot after its timestamp changed.
    Overwrites the existing screenshot only if extraction succeeds.
    """
    video_path = _require_video(media, recording_id)
    return await regenerate_event_screenshot(
        media, recording_id, event_id, video_path, request.start_time, request.timestamp
    )


@router.put("/{event_id}/screenshot", response_model=ScreenshotResponse)
async def upload_screenshot(
    recording_id: str,
    event_id: str,
    file: UploadFile = File(...),
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> ScreenshotResponse:
    """Store a client-captured screenshot for the event, replacing a file of the same name."""
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded screenshot is empty")

    file_path = media.save_uploaded_screenshot(event_id, data, file.filename)
    return ScreenshotResponse(
        event_id=event_id,
        screenshot_url=screenshot_url(recording_id, event_id),
        file_path=media.resolver.relative_path(file_path),
        size_bytes=len(data)
    )


@router.get("/{event_id}/screenshot")
async def get_screenshot(
    recording_id: str,
    event_id: str,
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> FileResponse:
    """
    Serve the current screenshot for an event.

    Raises:
        HTTPException: 404 if no screenshot exists
    """
    screenshot_path = media.locate_screenshot(event_id)
    if not screenshot_path or not os.path.exists(screenshot_path):
        raise HTTPException(status_code=404, detail="Screenshot not found")

    # Regeneration overwrites in place, so clients must revalidate
    return FileResponse(screenshot_path, headers={"Cache-Control": "no-cache"})


@router.delete("/{event_id}/screenshot", status_code=204)
async def delete_screenshot(
    recording_id: str,
    event_id: str,
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> Response:
    """Delete every screenshot of the event. Idempotent, 204 even if nothing existed."""
    media.delete_screenshot(event_id)
    return Response(status_code=204)
