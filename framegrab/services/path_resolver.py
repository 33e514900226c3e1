"""
Path resolver for recording media.

Maps logical keys (recording id, event id) to filesystem locations:

    {root}/uploads/recordings/{id}{ext}               source video
    {root}/uploads/thumbnails/{id}.jpg                one per recording
    {root}/uploads/event-screenshots/{eventId}.jpg    one per event

Every resolve_* call makes sure the parent directory exists first. Directory
creation is the only side effect; permission errors propagate unchanged.
File names are built once by build_file_name() and only reduced to their
final path component here, never sanitized or truncated a second time.
"""

import os
from typing import Optional

from framegrab.utils.filename_utils import build_file_name, sanitize_id


UPLOADS_DIRNAME = "uploads"
RECORDINGS_DIRNAME = "recordings"
THUMBNAILS_DIRNAME = "thumbnails"
SCREENSHOTS_DIRNAME = "event-screenshots"


def _leaf_name(file_name: str) -> str:
    """Final path component of file_name, so a name can never leave its directory."""
    leaf = os.path.basename(file_name.replace("\\", "/"))
    if leaf in ("", ".", ".."):
        raise ValueError(f"Invalid file name: {file_name!r}")
    return leaf


class PathResolver:
    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        self.upload_dir = os.path.join(self.root, UPLOADS_DIRNAME, RECORDINGS_DIRNAME)
        self.thumbnail_dir = os.path.join(self.root, UPLOADS_DIRNAME, THUMBNAILS_DIRNAME)
        self.screenshot_dir = os.path.join(self.root, UPLOADS_DIRNAME, SCREENSHOTS_DIRNAME)

    def ensure_directories(self) -> None:
        for directory in (self.upload_dir, self.thumbnail_dir, self.screenshot_dir):
            os.makedirs(directory, exist_ok=True)

    def resolve_upload_path(self, key: str) -> str:
        """Absolute path of a source video. key is a full file name, e.g. "{id}.webm"."""
        os.makedirs(self.upload_dir, exist_ok=True)
        return os.path.join(self.upload_dir, _leaf_name(key))

    def resolve_thumbnail_path(self, recording_id: str) -> str:
        """
        Absolute path of a recording thumbnail.

        recording_id is used whole, dots included: "rec.1" -> rec.1.jpg.
        """
        os.makedirs(self.thumbnail_dir, exist_ok=True)
        return os.path.join(self.thumbnail_dir, build_file_name(recording_id, ".jpg"))

    def resolve_screenshot_path(self, file_name: str) -> str:
        """Absolute path of a file inside the event screenshot directory."""
        os.makedirs(self.screenshot_dir, exist_ok=True)
        return os.path.join(self.screenshot_dir, _leaf_name(file_name))

    def build_file_name(self, file_id: str, extension: str) -> str:
        return build_file_name(file_id, extension)

    def relative_path(self, path: str) -> str:
        """Path relative to the storage root, e.g. uploads/thumbnails/abc.jpg."""
        return os.path.relpath(path, self.root)

    def find_upload_path(self, recording_id: str) -> Optional[str]:
        """
        Find the stored source video for a recording id, whatever its extension.
        Returns None if nothing was uploaded.
        """
        if not os.path.isdir(self.upload_dir):
            return None
        for filename in sorted(os.listdir(self.upload_dir)):
            if os.path.splitext(filename)[0] == sanitize_id(recording_id):
                return os.path.join(self.upload_dir, filename)
        return None
