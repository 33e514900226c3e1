"""
Source video storage for recordings.

Videos are written once at upload as {root}/uploads/recordings/{id}{ext}.
Deleting a recording removes the video and its thumbnail; both deletions
are best effort.
"""

import os
from typing import Optional

from framegrab.exceptions import PersistFailedError
from framegrab.services.path_resolver import PathResolver
from framegrab.utils.filename_utils import extension_from_filename
from framegrab.utils.logging_utils import get_job_logger, get_logger


logger = get_logger("recording_store")


class LocalRecordingStore:
    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def save_recording(self, recording_id: str, data: bytes, original_filename: str) -> str:
        """
        Save an uploaded video.

        Returns:
            Absolute path of the stored video

        Raises:
            PersistFailedError: The file could not be written
        """
        extension = extension_from_filename(original_filename, default=".webm")
        file_name = self.resolver.build_file_name(recording_id, extension)
        try:
            video_path = self.resolver.resolve_upload_path(file_name)
            with open(video_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise PersistFailedError(recording_id, e) from e

        get_job_logger(recording_id, logger).info(f"Saved recording: {video_path} ({len(data)} bytes)")
        return video_path

    def find_recording(self, recording_id: str) -> Optional[str]:
        return self.resolver.find_upload_path(recording_id)

    def delete_recording_files(self, recording_id: str) -> None:
        log = get_job_logger(recording_id, logger)
        paths = [self.resolver.find_upload_path(recording_id), self.resolver.resolve_thumbnail_path(recording_id)]
        for path in paths:
            if not path or not os.path.exists(path):
                continue
            try:
                os.remove(path)
                log.info(f"Deleted recording file: {path}")
            except OSError as e:
                log.warning(f"Failed to delete {path}: {e}")
