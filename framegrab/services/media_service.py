"""
Media service facade.

The single entry point orchestration code calls into. It composes the frame
extractor and the storage backends and hides which concrete implementations
are in use. Extraction calls run the blocking ffmpeg process in a worker
thread, so callers simply await them.
"""

import asyncio
import os
from typing import Iterable, Optional

from framegrab.config import Settings
from framegrab.services.ffmpeg_service import FrameExtractor, check_ffmpeg_installed
from framegrab.services.path_resolver import PathResolver
from framegrab.services.recording_store import LocalRecordingStore
from framegrab.services.screenshot_store import ScreenshotStore, create_screenshot_store
from framegrab.utils.filename_utils import extension_from_filename
from framegrab.utils.logging_utils import get_logger


logger = get_logger("media_service")


class MediaService:
    def __init__(
        self,
        resolver: PathResolver,
        extractor: FrameExtractor,
        screenshot_store: ScreenshotStore,
        recording_store: LocalRecordingStore,
    ):
        self.resolver = resolver
        self.extractor = extractor
        self.screenshot_store = screenshot_store
        self.recording_store = recording_store
        self._capability_lock = asyncio.Lock()
        self._capability_checked = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaService":
        resolver = PathResolver(settings.storage_root)
        resolver.ensure_directories()
        return cls(
            resolver,
            FrameExtractor.from_settings(settings, resolver),
            create_screenshot_store(settings.storage_backend, resolver),
            LocalRecordingStore(resolver),
        )

    @property
    def capability_checked(self) -> bool:
        return self._capability_checked

    @property
    def ffmpeg_installed(self) -> bool:
        return self.extractor.installed

    async def ensure_capability(self, force: bool = False) -> bool:
        """
        Run the ffmpeg capability check once and memoize the result.

        Concurrent first callers wait on the lock instead of reading an
        unchecked flag. force=True re-runs the check, e.g. after ffmpeg
        was installed on a running host.
        """
        async with self._capability_lock:
            if self._capability_checked and not force:
                return self.extractor.installed
            if force:
                logger.info("Re-checking FFmpeg availability")
            installed = await asyncio.to_thread(check_ffmpeg_installed, self.extractor.ffmpeg_binary)
            self.extractor.set_installed(installed)
            self._capability_checked = True
            return installed

    async def generate_thumbnail(self, video_path: str, recording_id: str) -> str:
        return await asyncio.to_thread(self.extractor.extract_thumbnail, video_path, recording_id)

    async def generate_frame_at_timestamp(self, video_path: str, event_id: str, relative_seconds) -> str:
        return await asyncio.to_thread(self.extractor.extract_frame_at, video_path, event_id, relative_seconds)

    def save_uploaded_screenshot(self, event_id: str, data: bytes, filename: Optional[str] = None) -> str:
        return self.screenshot_store.save_uploaded(event_id, data, extension_from_filename(filename or ""))

    def locate_screenshot(self, event_id: str) -> Optional[str]:
        return self.screenshot_store.locate(event_id)

    def delete_screenshot(self, event_id: str) -> None:
        self.screenshot_store.delete_for_event(event_id)

    def delete_all_screenshots_for(self, recording_id: str, event_ids: Iterable[str]) -> None:
        self.screenshot_store.delete_for_recording(recording_id, event_ids)

    def save_recording(self, recording_id: str, data: bytes, original_filename: str) -> str:
        return self.recording_store.save_recording(recording_id, data, original_filename)

    def find_recording(self, recording_id: str) -> Optional[str]:
        return self.recording_store.find_recording(recording_id)

    def locate_thumbnail(self, recording_id: str) -> Optional[str]:
        """Thumbnail path if one exists on disk, else None."""
        thumbnail_path = self.resolver.resolve_thumbnail_path(recording_id)
        return thumbnail_path if os.path.exists(thumbnail_path) else None

    def delete_recording_files(self, recording_id: str) -> None:
        self.recording_store.delete_recording_files(recording_id)
