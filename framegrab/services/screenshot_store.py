"""
Screenshot storage for event screenshots.

This module manages the lifecycle of screenshot artifacts addressed by event id:
- Persisting uploaded images
- Locating the current screenshot for an event (filesystem is the source of truth)
- Best-effort deletion per event and per recording

An artifact belongs to event E if its file name is E followed by '.' or '-',
so suffixed files from regenerations (E-1700000000.jpg) are found as well.
"""

import os
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from framegrab.exceptions import PersistFailedError
from framegrab.services.path_resolver import PathResolver
from framegrab.utils.filename_utils import matches_id_prefix, normalize_extension
from framegrab.utils.logging_utils import get_job_logger, get_logger


logger = get_logger("screenshot_store")


class ScreenshotStore(ABC):
    """Storage backend contract for event screenshots."""

    @abstractmethod
    def save_uploaded(self, event_id: str, data: bytes, suggested_extension: Optional[str] = None) -> str:
        """Write data as the event's screenshot, replacing a file of the same name."""

    @abstractmethod
    def locate(self, event_id: str) -> Optional[str]:
        """Current screenshot for the event, or None. Never raises for "not found"."""

    @abstractmethod
    def delete_for_event(self, event_id: str) -> int:
        """Delete every screenshot of the event. Best effort, returns the number deleted."""

    def delete_for_recording(self, recording_id: str, event_ids: Iterable[str]) -> int:
        """
        Delete the screenshots of every event of a recording.

        The store only knows event ids, so the caller enumerates them.
        """
        log = get_job_logger(recording_id, logger)
        deleted = 0
        for event_id in event_ids:
            deleted += self.delete_for_event(event_id)
        log.info(f"Deleted {deleted} screenshot(s) for recording {recording_id}")
        return deleted


class LocalScreenshotStore(ScreenshotStore):
    """Screenshots as files in {root}/uploads/event-screenshots."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def _matching_files(self, event_id: str) -> List[str]:
        screenshot_dir = self.resolver.screenshot_dir
        if not os.path.isdir(screenshot_dir):
            return []
        return sorted(
            filename for filename in os.listdir(screenshot_dir)
            if matches_id_prefix(filename, event_id)
        )

    def save_uploaded(self, event_id: str, data: bytes, suggested_extension: Optional[str] = None) -> str:
        file_name = self.resolver.build_file_name(event_id, normalize_extension(suggested_extension))
        try:
            screenshot_path = self.resolver.resolve_screenshot_path(file_name)
            with open(screenshot_path, "wb") as f:
                f.write(data)
        except OSError as e:
            get_job_logger(event_id, logger).error(f"Failed to save screenshot: {e}")
            raise PersistFailedError(event_id, e) from e

        get_job_logger(event_id, logger).info(f"Saved uploaded screenshot: {screenshot_path} ({len(data)} bytes)")
        return screenshot_path

    def locate(self, event_id: str) -> Optional[str]:
        try:
            files = self._matching_files(event_id)
        except OSError as e:
            get_job_logger(event_id, logger).warning(f"Error looking for screenshot: {e}")
            return None

        if not files:
            return None

        # Names may embed timestamps, so the greatest name is the most recent
        return os.path.join(self.resolver.screenshot_dir, files[-1])

    def delete_for_event(self, event_id: str) -> int:
        log = get_job_logger(event_id, logger)
        try:
            files = self._matching_files(event_id)
        except OSError as e:
            log.error(f"Error listing screenshots for deletion: {e}")
            return 0

        deleted = 0
        for filename in files:
            file_path = os.path.join(self.resolver.screenshot_dir, filename)
            try:
                os.remove(file_path)
            except FileNotFoundError:
                continue
            except OSError as e:
                log.warning(f"Failed to delete screenshot {filename}: {e}")
                continue
            deleted += 1
            log.info(f"Deleted event screenshot: {file_path}")
        return deleted


def create_screenshot_store(backend: str, resolver: PathResolver) -> ScreenshotStore:
    """
    Select the screenshot store implementation at startup.

    Raises:
        ValueError: Unknown backend name
    """
    if backend == "local":
        return LocalScreenshotStore(resolver)
    raise ValueError(f"Unknown storage backend: {backend!r}")
