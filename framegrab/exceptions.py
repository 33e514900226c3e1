"""
Typed errors raised by the media subsystem.

Every error carries a machine-readable code, the HTTP status the API layer
should answer with, and a details dict with enough context (event id,
attempted timestamp, underlying error) to build a user-facing message.
"""

from typing import Any, Dict, Optional


class MediaError(Exception):
    """Base class for all media subsystem errors."""

    code = "MEDIA_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class SourceNotFoundError(MediaError):
    """Input video is missing. Caller error, not retried."""

    code = "SOURCE_NOT_FOUND"
    status_code = 404

    def __init__(self, video_path: str):
        super().__init__(f"Source video not found: {video_path}", {"path": video_path})


class ToolUnavailableError(MediaError):
    """FFmpeg is not installed or not reachable at the configured path."""

    code = "FFMPEG_NOT_INSTALLED"
    status_code = 503

    def __init__(self, binary: str = "ffmpeg"):
        super().__init__(
            f"FFmpeg is not installed or not found at '{binary}'",
            {"binary": binary},
        )


class ExtractionFailedError(MediaError):
    """FFmpeg ran but failed, or produced a missing/empty image after fallback."""

    code = "EXTRACTION_FAILED"
    status_code = 500

    def __init__(
        self,
        key: str,
        timestamp: Optional[float] = None,
        mode: str = "event-frame",
        error: Optional[BaseException] = None,
    ):
        message = f"Failed to extract {mode} for {key}"
        if timestamp is not None:
            message += f" at {timestamp:.3f}s"
        if error is not None:
            message += f": {error}"
        super().__init__(message, {
            "key": key,
            "timestamp": timestamp,
            "mode": mode,
            "errorMessage": str(error) if error is not None else None,
        })


class PersistFailedError(MediaError):
    """Writing an uploaded artifact to storage failed."""

    code = "PERSIST_FAILED"
    status_code = 500

    def __init__(self, key: str, error: Optional[BaseException] = None):
        super().__init__(f"Failed to save file for {key}", {
            "key": key,
            "errorMessage": str(error) if error is not None else None,
        })
