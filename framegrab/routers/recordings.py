"""
Recordings router for source video upload and removal.
"""

from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, Response

from framegrab.dependencies import get_media_service, verify_api_key
from framegrab.models import RecordingIngestResponse
from framegrab.services.media_service import MediaService
from framegrab.services.recording_service import ingest_recording, remove_recording_media


router = APIRouter(prefix="/recordings", tags=["Recordings"])


@router.post("/{recording_id}/video", response_model=RecordingIngestResponse)
async def upload_recording(
    recording_id: str,
    file: UploadFile = File(...),
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> RecordingIngestResponse:
    """
    Save a recording video and generate its thumbnail.

    The thumbnail is best effort: if FFmpeg is missing or fails,
    thumbnail_path is null and the upload still succeeds.
    """
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded video is empty")
    return await ingest_recording(media, recording_id, data, file.filename or "")


@router.get("/{recording_id}/thumbnail")
async def get_thumbnail(
    recording_id: str,
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> FileResponse:
    """Serve the recording thumbnail, 404 if none was generated."""
    thumbnail_path = media.locate_thumbnail(recording_id)
    if not thumbnail_path:
        raise HTTPException(status_code=404, detail="Thumbnail not found")
    return FileResponse(thumbnail_path, media_type="image/jpeg")


@router.delete("/{recording_id}", status_code=204)
async def delete_recording(
    recording_id: str,
    event_id: List[str] = Query(default=[], description="Event ids whose screenshots are deleted too"),
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> Response:
    """
    Delete a recording's video, thumbnail and event screenshots.
    Best effort and idempotent.
    """
    remove_recording_media(media, recording_id, event_id)
    return Response(status_code=204)
