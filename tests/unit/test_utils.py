"""
Unit tests for utility modules.

This module tests:
- app/utils/filename_utils.py
- app/utils/process_utils.py
"""

import subprocess
import pytest
from unittest.mock import patch, MagicMock
from yt_dlp.postprocessor.ffmpeg import ACODECS

from app.config import AUDIO_FORMATS, MAX_FILE_NAME_LENGTH
from app.utils.filename_utils import (
    build_download_url,
    encode_content_disposition_filename,
    find_invalid_filename_chars,
    get_audio_extension,
    resolve_unique_file_name,
)
from app.utils.process_utils import ProcessResult, run_command


class TestFindInvalidFilenameChars:
    """Test detection of characters not allowed in ringtone names."""

    def test_clean_names(self):
        """Test ordinary names, including Unicode and dots, are accepted."""
        assert find_invalid_filename_chars("My Clip") == []
        assert find_invalid_filename_chars("café ringtone") == []
        assert find_invalid_filename_chars("日本語") == []
        assert find_invalid_filename_chars("clip.v2") == []

    def test_each_reserved_char(self):
        """Test every reserved character is reported."""
        for char in '<>:"/\\|?*':
            assert find_invalid_filename_chars(f"a{char}b") == [char]

    def test_reports_each_char_once_in_order(self):
        """Test duplicates are collapsed and first-seen order kept."""
        assert find_invalid_filename_chars("a?b*c?d") == ["?", "*"]

    def test_control_chars(self):
        """Test control characters such as newline and NUL are rejected."""
        assert find_invalid_filename_chars("a\nb") == ["\n"]
        assert find_invalid_filename_chars("a\0b") == ["\0"]


class TestResolveUniqueFileName:
    """Test the linear probe for a free display name."""

    def test_free_name_unchanged(self):
        assert resolve_unique_file_name("My Clip", []) == "My Clip"
        assert resolve_unique_file_name("My Clip", ["Other"]) == "My Clip"

    def test_first_suffix(self):
        assert resolve_unique_file_name("My Clip", ["My Clip"]) == "My Clip 1"

    def test_skips_taken_suffixes(self):
        existing = ["My Clip", "My Clip 1", "My Clip 2"]
        assert resolve_unique_file_name("My Clip", existing) == "My Clip 3"

    def test_case_insensitive(self):
        """Test collisions ignore case, and so do suffix probes."""
        assert resolve_unique_file_name("my clip", ["MY CLIP"]) == "my clip 1"
        assert resolve_unique_file_name("My Clip", ["my clip", "MY CLIP 1"]) == "My Clip 2"

    def test_gap_in_suffixes_is_reused(self):
        assert resolve_unique_file_name("Tone", ["Tone", "Tone 2"]) == "Tone 1"

    def test_current_name_is_not_a_collision(self):
        """Test renaming a record to its own name (or a re-cased one) keeps it."""
        assert resolve_unique_file_name("My Clip", ["My Clip"], current_name="My Clip") == "My Clip"
        assert resolve_unique_file_name("MY CLIP", ["My Clip"], current_name="My Clip") == "MY CLIP"

    def test_suffixed_name_stays_within_limit(self):
        """Test a full-length name is shortened to make room for the suffix."""
        desired = "a" * MAX_FILE_NAME_LENGTH
        first = resolve_unique_file_name(desired, [desired])
        assert first == "a" * (MAX_FILE_NAME_LENGTH - 2) + " 1"
        assert len(first) == MAX_FILE_NAME_LENGTH

        taken = [desired] + ["a" * (MAX_FILE_NAME_LENGTH - 2) + f" {i}" for i in range(1, 10)]
        tenth = resolve_unique_file_name(desired, taken)
        assert tenth == "a" * (MAX_FILE_NAME_LENGTH - 3) + " 10"
        assert len(tenth) == MAX_FILE_NAME_LENGTH

    def test_short_names_are_not_shortened(self):
        assert resolve_unique_file_name("Tone", ["Tone"], max_length=10) == "Tone 1"
        assert resolve_unique_file_name("Ringtone A", ["Ringtone A"], max_length=10) == "Ringtone 1"


class TestDownloadPaths:
    """Test extension mapping and download URL construction."""

    def test_audio_extension(self):
        assert get_audio_extension("mp3") == "mp3"
        assert get_audio_extension("m4a") == "m4a"
        assert get_audio_extension("vorbis") == "ogg"
        assert get_audio_extension("aac") == "m4a"

    @pytest.mark.parametrize("audio_format", AUDIO_FORMATS)
    def test_audio_extension_matches_ytdlp(self, audio_format):
        """Test every accepted format maps to the extension yt-dlp writes."""
        assert get_audio_extension(audio_format) == ACODECS[audio_format][0]

    def test_build_download_url(self):
        assert build_download_url("user-1", "My Clip", "mp3") == "/downloads/user-1/My Clip.mp3"


class TestContentDisposition:
    """Test Content-Disposition encoding."""

    def test_ascii(self):
        assert encode_content_disposition_filename("My Clip.mp3") == 'attachment; filename="My Clip.mp3"'

    def test_unicode(self):
        header = encode_content_disposition_filename("café.mp3")
        assert 'filename="cafe.mp3"' in header
        assert "filename*=UTF-8''caf%C3%A9.mp3" in header


class TestRunCommand:
    """Test subprocess outcomes are returned, never raised."""

    def test_success(self):
        completed = MagicMock(stdout="out", stderr="", returncode=0)
        with patch("subprocess.run", return_value=completed) as mock_run:
            result = run_command(["yt-dlp", "--version"], timeout=5)

        assert result == ProcessResult("out", "", 0)
        assert result.ok
        assert mock_run.call_args.kwargs["timeout"] == 5

    def test_non_zero_exit(self):
        completed = MagicMock(stdout="", stderr="ERROR: Video unavailable", returncode=1)
        with patch("subprocess.run", return_value=completed):
            result = run_command(["yt-dlp", "x"], timeout=5)

        assert not result.ok
        assert "Video unavailable" in result.stderr

    def test_timeout(self):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="yt-dlp", timeout=5)):
            result = run_command(["yt-dlp", "x"], timeout=5)

        assert not result.ok
        assert "timed out" in result.stderr

    def test_missing_binary(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("No such file: yt-dlp")):
            result = run_command(["yt-dlp", "x"], timeout=5)

        assert result.returncode == 1
        assert "No such file" in result.stderr
