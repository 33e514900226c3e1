"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test environment variables (set before the app is imported)
- Storage fixtures rooted in tmp_path
- A fake ffmpeg/ffprobe subprocess boundary
- Test client fixture for FastAPI with the media service overridden
"""

import os
import json
import shutil
import subprocess
import tempfile

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import patch

_TEST_STORAGE_ROOT = tempfile.mkdtemp(prefix="framegrab-tests-")

# Settings are cached on first use, so the environment must be in place before
# any test module imports the app
os.environ.update({
    "API_KEY": "test-api-key",
    "ALLOWED_ORIGIN": "*",
    "STORAGE_ROOT": _TEST_STORAGE_ROOT,
    "FFMPEG_BINARY": "ffmpeg",
    "FFPROBE_BINARY": "ffprobe",
})

from framegrab.services.ffmpeg_service import FrameExtractor  # noqa: E402
from framegrab.services.media_service import MediaService  # noqa: E402
from framegrab.services.path_resolver import PathResolver  # noqa: E402
from framegrab.services.recording_store import LocalRecordingStore  # noqa: E402
from framegrab.services.screenshot_store import LocalScreenshotStore  # noqa: E402


FAKE_JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-jpeg-body\xff\xd9"


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TEST_STORAGE_ROOT, ignore_errors=True)


class FakeFfmpeg:
    """
    Stand-in for subprocess.run covering `ffmpeg -version`, the ffprobe
    duration probe and single-frame extraction.

    Attributes:
        payload: Bytes written as the extracted frame
        duration: Value reported as format.duration (None omits it)
        probe_returncode: Exit code of ffprobe
        fail_at: -ss values ("28.500") for which ffmpeg exits non-zero
        empty_at: -ss values for which ffmpeg writes an empty file
        timeout_at: -ss values for which ffmpeg times out
        extraction_timestamps: -ss values of every extraction attempt, in order
        extraction_commands: full argv of every extraction attempt
        probe_calls: number of ffprobe invocations
        run_kwargs: extra keyword arguments of every subprocess.run call
    """

    def __init__(self):
        self.payload = FAKE_JPEG
        self.duration = "30.000000"
        self.probe_returncode = 0
        self.version_returncode = 0
        self.fail_at = set()
        self.empty_at = set()
        self.timeout_at = set()
        self.extraction_timestamps = []
        self.extraction_commands = []
        self.probe_calls = 0
        self.version_calls = 0
        self.run_kwargs = []

    def __call__(self, cmd, capture_output=True, text=True, timeout=None, **kwargs):
        self.run_kwargs.append(kwargs)
        if "-version" in cmd:
            self.version_calls += 1
            return subprocess.CompletedProcess(cmd, self.version_returncode, "ffmpeg version 6.1.1\n", "")

        if "format=duration" in cmd:
            self.probe_calls += 1
            if self.probe_returncode != 0:
                return subprocess.CompletedProcess(cmd, self.probe_returncode, "", "moov atom not found")
            fmt = {} if self.duration is None else {"duration": self.duration}
            return subprocess.CompletedProcess(cmd, 0, json.dumps({"format": fmt}), "")

        timestamp = cmd[cmd.index("-ss") + 1]
        output_path = cmd[-1]
        self.extraction_timestamps.append(timestamp)
        self.extraction_commands.append(list(cmd))

        if timestamp in self.timeout_at:
            raise subprocess.TimeoutExpired(cmd, timeout or 0)
        if timestamp in self.fail_at:
            return subprocess.CompletedProcess(cmd, 1, "", "Invalid data found when processing input")

        with open(output_path, "wb") as f:
            f.write(b"" if timestamp in self.empty_at else self.payload)
        return subprocess.CompletedProcess(cmd, 0, "", "")


@pytest.fixture
def fake_ffmpeg():
    """Patch subprocess.run for the ffmpeg service with a FakeFfmpeg."""
    fake = FakeFfmpeg()
    with patch("framegrab.services.ffmpeg_service.subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture
def resolver(tmp_path):
    """PathResolver rooted in a per-test directory. Directories are created lazily."""
    return PathResolver(str(tmp_path))


@pytest.fixture
def extractor(resolver):
    """FrameExtractor with the capability flag already set."""
    frame_extractor = FrameExtractor(resolver)
    frame_extractor.installed = True
    return frame_extractor


@pytest.fixture
def screenshot_store(resolver):
    return LocalScreenshotStore(resolver)


@pytest.fixture
def media(resolver, extractor, screenshot_store):
    """MediaService wired to the per-test storage root."""
    return MediaService(resolver, extractor, screenshot_store, LocalRecordingStore(resolver))


@pytest.fixture
def video_file(resolver):
    """A stored source video for recording "rec-1"."""
    video_path = resolver.resolve_upload_path("rec-1.webm")
    with open(video_path, "wb") as f:
        f.write(b"\x1aE\xdf\xa3fake-webm")
    return video_path


@pytest.fixture
def api_key():
    """Return test API key."""
    return "test-api-key"


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest_asyncio.fixture
async def client(media):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server. The media service dependency is
    overridden with the per-test instance.
    """
    from main import app
    from framegrab.dependencies import get_media_service

    app.dependency_overrides[get_media_service] = lambda: media
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
