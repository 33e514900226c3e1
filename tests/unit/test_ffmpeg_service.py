"""
Unit tests for the FFmpeg frame extraction service.

This module tests:
- resolve_safe_timestamp() clamping policy
- FrameExtractor.extract_frame_at() clamping, fallback and failure modes
- FrameExtractor.extract_thumbnail()
- FrameExtractor.probe_duration() best-effort behaviour
- check_ffmpeg_installed()
"""

import os
import subprocess
import sys
import pytest
from unittest.mock import patch

from framegrab.exceptions import ExtractionFailedError, SourceNotFoundError, ToolUnavailableError
from framegrab.services.ffmpeg_service import check_ffmpeg_installed, resolve_safe_timestamp


class TestResolveSafeTimestamp:
    """Test the pure clamping policy."""

    @pytest.mark.parametrize("timestamp", [-100, -0.5, 0])
    def test_non_positive_uses_minimum(self, timestamp):
        assert resolve_safe_timestamp(timestamp, 30) == 1.0

    @pytest.mark.parametrize("timestamp", [30, 30.001, 45, 10_000])
    def test_at_or_past_end_uses_ratio_of_duration(self, timestamp):
        result = resolve_safe_timestamp(timestamp, 30)
        assert result == pytest.approx(28.5)
        assert result < 30

    @pytest.mark.parametrize("timestamp", [0.001, 1, 12.25, 29.999])
    def test_in_range_unchanged(self, timestamp):
        assert resolve_safe_timestamp(timestamp, 30) == timestamp

    def test_short_video_never_below_minimum(self):
        assert resolve_safe_timestamp(5, 0.8) == 1.0

    def test_custom_minimum_and_ratio(self):
        assert resolve_safe_timestamp(0, 30, minimum=2.0) == 2.0
        assert resolve_safe_timestamp(50, 40, ratio=0.5) == 20.0


class TestExtractFrameAt:
    """Test event frame extraction."""

    def test_in_range_timestamp_extracted_unchanged(self, extractor, fake_ffmpeg, video_file):
        path = extractor.extract_frame_at(video_file, "evt-1", 12.25)

        assert fake_ffmpeg.extraction_timestamps == ["12.250"]
        assert path == os.path.join(extractor.resolver.screenshot_dir, "evt-1.jpg")
        with open(path, "rb") as f:
            assert f.read() == fake_ffmpeg.payload

    def test_timestamp_past_duration_clamped(self, extractor, fake_ffmpeg, video_file):
        """Duration probes to 30s, event at 45s -> 28.5s."""
        fake_ffmpeg.duration = "30.000000"

        extractor.extract_frame_at(video_file, "evt-1", 45)

        assert fake_ffmpeg.extraction_timestamps == ["28.500"]

    @pytest.mark.parametrize("timestamp", [-3, -0.5, 0])
    def test_non_positive_timestamp_same_as_minimum(self, extractor, fake_ffmpeg, video_file, timestamp):
        extractor.extract_frame_at(video_file, "evt-1", timestamp)
        extractor.extract_frame_at(video_file, "evt-2", 1.0)

        assert fake_ffmpeg.extraction_timestamps == ["1.000", "1.000"]

    @pytest.mark.parametrize("timestamp", [float("nan"), float("inf"), float("-inf"), None, "12"])
    def test_non_finite_timestamp_uses_default_without_probe(self, extractor, fake_ffmpeg, video_file, timestamp):
        path = extractor.extract_frame_at(video_file, "evt-1", timestamp)

        assert fake_ffmpeg.extraction_timestamps == ["0.000"]
        assert fake_ffmpeg.probe_calls == 0
        assert os.path.getsize(path) > 0

    def test_probe_failure_uses_default_duration(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.probe_returncode = 1

        extractor.extract_frame_at(video_file, "evt-1", 90)

        # 60s default * 0.95
        assert fake_ffmpeg.extraction_timestamps == ["57.000"]

    def test_duration_reprobed_every_call(self, extractor, fake_ffmpeg, video_file):
        extractor.extract_frame_at(video_file, "evt-1", 5)
        fake_ffmpeg.duration = "10.0"
        extractor.extract_frame_at(video_file, "evt-1", 20)

        assert fake_ffmpeg.probe_calls == 2
        assert fake_ffmpeg.extraction_timestamps == ["5.000", "9.500"]

    @pytest.mark.parametrize("length", [179, 180, 197, 198, 199, 250])
    def test_long_event_id_keeps_extension(self, extractor, fake_ffmpeg, video_file, length):
        path = extractor.extract_frame_at(video_file, "e" * length, 5)

        assert path.endswith(".jpg")
        assert os.path.basename(path) == "e" * min(length, 180) + ".jpg"
        assert fake_ffmpeg.extraction_commands[0][-1].endswith(".partial.jpg")
        assert os.path.getsize(path) > 0

    def test_uses_screenshot_size(self, extractor, fake_ffmpeg, video_file):
        extractor.extract_frame_at(video_file, "evt-1", 5)

        cmd = fake_ffmpeg.extraction_commands[0]
        assert cmd[cmd.index("-vf") + 1] == "scale=1920:1080"
        assert cmd[cmd.index("-frames:v") + 1] == "1"

    def test_failed_primary_falls_back_once(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.fail_at = {"28.500"}

        path = extractor.extract_frame_at(video_file, "evt-1", 45)

        assert fake_ffmpeg.extraction_timestamps == ["28.500", "0.000"]
        assert os.path.getsize(path) > 0

    def test_empty_output_falls_back(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.empty_at = {"12.000"}

        path = extractor.extract_frame_at(video_file, "evt-1", 12)

        assert fake_ffmpeg.extraction_timestamps == ["12.000", "0.000"]
        assert os.path.getsize(path) > 0

    def test_timeout_counts_as_failed_attempt(self, extractor, fake_ffmpeg, video_file):
        extractor.timeout = 5
        fake_ffmpeg.timeout_at = {"12.000"}

        extractor.extract_frame_at(video_file, "evt-1", 12)

        assert fake_ffmpeg.extraction_timestamps == ["12.000", "0.000"]

    def test_fallback_failure_raises_extraction_failed(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.fail_at = {"12.000"}
        fake_ffmpeg.empty_at = {"0.000"}

        with pytest.raises(ExtractionFailedError) as exc_info:
            extractor.extract_frame_at(video_file, "evt-1", 12)

        assert fake_ffmpeg.extraction_timestamps == ["12.000", "0.000"]
        assert exc_info.value.details["key"] == "evt-1"
        assert exc_info.value.details["timestamp"] == 12
        assert not os.path.exists(os.path.join(extractor.resolver.screenshot_dir, "evt-1.jpg"))

    def test_failed_regeneration_keeps_previous_screenshot(self, extractor, fake_ffmpeg, video_file):
        previous = extractor.resolver.resolve_screenshot_path("evt-1.jpg")
        with open(previous, "wb") as f:
            f.write(b"previous-screenshot")
        fake_ffmpeg.fail_at = {"12.000", "0.000"}

        with pytest.raises(ExtractionFailedError):
            extractor.extract_frame_at(video_file, "evt-1", 12)

        with open(previous, "rb") as f:
            assert f.read() == b"previous-screenshot"

    def test_regeneration_overwrites_in_place(self, extractor, fake_ffmpeg, video_file):
        extractor.extract_frame_at(video_file, "evt-1", 3)
        extractor.extract_frame_at(video_file, "evt-1", 7)

        assert os.listdir(extractor.resolver.screenshot_dir) == ["evt-1.jpg"]

    def test_no_partial_files_left_after_failure(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.empty_at = {"12.000", "0.000"}

        with pytest.raises(ExtractionFailedError):
            extractor.extract_frame_at(video_file, "evt-1", 12)

        assert os.listdir(extractor.resolver.screenshot_dir) == []

    def test_missing_source_raises_before_tool_check(self, extractor, fake_ffmpeg, tmp_path):
        extractor.installed = False

        with pytest.raises(SourceNotFoundError):
            extractor.extract_frame_at(str(tmp_path / "missing.webm"), "evt-1", 5)

        assert fake_ffmpeg.extraction_timestamps == []

    def test_tool_unavailable_fails_fast(self, extractor, fake_ffmpeg, video_file):
        extractor.installed = False

        with pytest.raises(ToolUnavailableError):
            extractor.extract_frame_at(video_file, "evt-1", 5)

        assert fake_ffmpeg.probe_calls == 0
        assert fake_ffmpeg.extraction_timestamps == []


class TestExtractThumbnail:
    """Test recording thumbnail extraction."""

    def test_thumbnail_at_two_seconds(self, extractor, fake_ffmpeg, video_file):
        path = extractor.extract_thumbnail(video_file, "rec-1")

        assert path == os.path.join(extractor.resolver.thumbnail_dir, "rec-1.jpg")
        assert fake_ffmpeg.extraction_timestamps == ["2.000"]
        cmd = fake_ffmpeg.extraction_commands[0]
        assert cmd[cmd.index("-vf") + 1] == "scale=640:400"

    def test_dotted_recording_ids_get_separate_thumbnails(self, extractor, fake_ffmpeg, video_file):
        first = extractor.extract_thumbnail(video_file, "rec.1")
        second = extractor.extract_thumbnail(video_file, "rec.2")

        assert os.path.basename(first) == "rec.1.jpg"
        assert os.path.basename(second) == "rec.2.jpg"
        assert sorted(os.listdir(extractor.resolver.thumbnail_dir)) == ["rec.1.jpg", "rec.2.jpg"]

    def test_thumbnail_failure_has_no_fallback(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.fail_at = {"2.000"}

        with pytest.raises(ExtractionFailedError) as exc_info:
            extractor.extract_thumbnail(video_file, "rec-1")

        assert fake_ffmpeg.extraction_timestamps == ["2.000"]
        assert exc_info.value.details["mode"] == "thumbnail"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_tool_unavailable_touches_nothing(self, extractor, fake_ffmpeg, video_file):
        """Only existence checks happen; the thumbnail directory is not even created."""
        extractor.installed = False

        with pytest.raises(ToolUnavailableError):
            extractor.extract_thumbnail(video_file, "rec-1")

        assert fake_ffmpeg.extraction_timestamps == []
        assert not os.path.exists(extractor.resolver.thumbnail_dir)

    def test_missing_source(self, extractor, fake_ffmpeg, tmp_path):
        with pytest.raises(SourceNotFoundError) as exc_info:
            extractor.extract_thumbnail(str(tmp_path / "nope.mp4"), "rec-1")

        assert exc_info.value.status_code == 404


class TestProbeDuration:
    """Test best-effort duration probing."""

    def test_reads_format_duration(self, extractor, fake_ffmpeg, video_file):
        fake_ffmpeg.duration = "42.5"
        assert extractor.probe_duration(video_file) == 42.5

    @pytest.mark.parametrize("duration", [None, "N/A", "0", "-3", "nan"])
    def test_unusable_duration_returns_default(self, extractor, fake_ffmpeg, video_file, duration):
        fake_ffmpeg.duration = duration
        assert extractor.probe_duration(video_file) == 60.0

    def test_missing_ffprobe_returns_default(self, extractor, video_file):
        with patch("framegrab.services.ffmpeg_service.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            assert extractor.probe_duration(video_file) == 60.0

    def test_configured_default(self, extractor, fake_ffmpeg, video_file):
        extractor.default_duration = 120.0
        fake_ffmpeg.probe_returncode = 1
        assert extractor.probe_duration(video_file) == 120.0


class TestCheckFfmpegInstalled:
    """Test the capability check."""

    def test_installed(self, fake_ffmpeg):
        assert check_ffmpeg_installed("ffmpeg") is True
        assert fake_ffmpeg.version_calls == 1

    def test_non_zero_exit(self, fake_ffmpeg):
        fake_ffmpeg.version_returncode = 1
        assert check_ffmpeg_installed("ffmpeg") is False

    def test_binary_missing(self):
        with patch("framegrab.services.ffmpeg_service.subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
            assert check_ffmpeg_installed("/opt/missing/ffmpeg") is False

    def test_timeout(self):
        with patch(
            "framegrab.services.ffmpeg_service.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["ffmpeg", "-version"], 10)
        ):
            assert check_ffmpeg_installed("ffmpeg") is False


def _write_tool(tmp_path, name, body):
    """Executable shell script standing in for ffmpeg/ffprobe."""
    script = tmp_path / name
    script.write_text("#!/bin/sh\n" + body)
    script.chmod(0o755)
    return str(script)


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
class TestUndecodableToolOutput:
    """Tool output that is not valid UTF-8 must not escape as UnicodeDecodeError."""

    def test_probe_returns_default(self, extractor, video_file, tmp_path):
        extractor.ffprobe_binary = _write_tool(tmp_path, "ffprobe", "printf '\\377\\376 bad metadata' >&2\nexit 1\n")
        assert extractor.probe_duration(video_file) == 60.0

    def test_extraction_falls_back_then_fails_typed(self, extractor, video_file, tmp_path):
        extractor.ffprobe_binary = _write_tool(tmp_path, "ffprobe", "printf '\\377' >&2\nexit 1\n")
        extractor.ffmpeg_binary = _write_tool(tmp_path, "ffmpeg", "printf '\\377\\376 bad title' >&2\nexit 1\n")

        with pytest.raises(ExtractionFailedError) as exc_info:
            extractor.extract_frame_at(video_file, "evt-1", 5)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert os.listdir(extractor.resolver.screenshot_dir) == []

    def test_version_check(self, tmp_path):
        binary = _write_tool(tmp_path, "ffmpeg", "printf 'ffmpeg version \\377\\n'\nexit 0\n")
        assert check_ffmpeg_installed(binary) is True

    def test_every_call_decodes_with_replacement(self, extractor, fake_ffmpeg, video_file):
        check_ffmpeg_installed("ffmpeg")
        extractor.extract_frame_at(video_file, "evt-1", 5)

        assert len(fake_ffmpeg.run_kwargs) == 3
        assert all(kwargs.get("errors") == "replace" for kwargs in fake_ffmpeg.run_kwargs)
