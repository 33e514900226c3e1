"""
Admin router for administrative endpoints.

This module provides endpoints for:
- FFmpeg capability flag status
- Re-running the capability check after FFmpeg was installed
"""

from fastapi import APIRouter, Depends

from framegrab.dependencies import get_media_service, verify_api_key
from framegrab.models import FfmpegStatusResponse
from framegrab.services.media_service import MediaService

router = APIRouter(prefix="/admin", tags=["Admin"])


def _status(media: MediaService) -> FfmpegStatusResponse:
    return FfmpegStatusResponse(
        installed=media.ffmpeg_installed,
        checked=media.capability_checked,
        ffmpeg_binary=media.extractor.ffmpeg_binary
    )


@router.get("/ffmpeg/status", response_model=FfmpegStatusResponse)
async def get_ffmpeg_status(
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> FfmpegStatusResponse:
    """
    Get the current FFmpeg capability flag.

    When installed is false every extraction request fails fast with
    503 FFMPEG_NOT_INSTALLED until the check passes.
    """
    return _status(media)


@router.post("/ffmpeg/recheck", response_model=FfmpegStatusResponse)
async def recheck_ffmpeg(
    media: MediaService = Depends(get_media_service),
    _: bool = Depends(verify_api_key)
) -> FfmpegStatusResponse:
    """
    Re-run the FFmpeg capability check.

    Use cases:
    - FFmpeg was installed or FFMPEG_BINARY fixed on a running host
    - Verifying a deployment without restarting the service
    """
    await media.ensure_capability(force=True)
    return _status(media)
