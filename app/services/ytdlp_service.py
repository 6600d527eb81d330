"""
YT-DLP service module.

Handles yt-dlp binary execution for:
- Metadata-only lookups (title, duration, uploader, thumbnail)
- Audio extraction of a single time section of a video
"""

import os
import logging
from typing import List, Optional, Union

from app.config import Settings
from app.models import VideoInfoResponse
from app.utils.process_utils import ProcessResult, run_command


VIDEO_INFO_FIELDS = ("%(title)s", "%(duration)s", "%(uploader)s", "%(thumbnail)s")

# yt-dlp prints NA for fields the extractor did not provide
MISSING_VALUE = "NA"


class VideoInfoError(Exception):
    """yt-dlp could not produce metadata for a URL (bad URL, network, geo-block, private video...)."""


def run_ytdlp_binary(args: List[str], settings: Settings, timeout: int = 120) -> ProcessResult:
    """
    Run yt-dlp binary with given arguments.

    Adds the configured cookies file when it exists on disk.

    Args:
        args: List of yt-dlp command arguments
        settings: Application settings (binary path, cookies file)
        timeout: Command timeout in seconds

    Returns:
        ProcessResult with stdout, stderr and return code
    """
    cmd = [settings.ytdlp_binary] + args

    if settings.ytdlp_cookies_file and os.path.exists(settings.ytdlp_cookies_file):
        cmd.extend(['--cookies', settings.ytdlp_cookies_file])

    return run_command(cmd, timeout)


def _clean_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value == MISSING_VALUE:
        return None
    return value


def parse_duration(value: Optional[str]) -> int:
    """Parse a printed duration ("212", "212.48", "NA") to whole seconds, 0 if unknown."""
    value = _clean_value(value)
    if value is None:
        return 0
    try:
        return max(int(float(value)), 0)
    except ValueError:
        return 0


def parse_video_info(stdout: str) -> VideoInfoResponse:
    """
    Parse the four --print lines (title, duration, uploader, thumbnail).

    Missing or unparseable values fall back to "Unknown", 0, "Unknown" and None.
    """
    lines = stdout.strip().split("\n")
    lines += [None] * (len(VIDEO_INFO_FIELDS) - len(lines))
    title, duration, uploader, thumbnail = lines[:len(VIDEO_INFO_FIELDS)]

    return VideoInfoResponse(
        title=_clean_value(title) or "Unknown",
        duration=parse_duration(duration),
        uploader=_clean_value(uploader) or "Unknown",
        thumbnail=_clean_value(thumbnail),
    )


def fetch_video_info(
    url: str,
    settings: Settings,
    logger: Union[logging.Logger, logging.LoggerAdapter]
) -> VideoInfoResponse:
    """
    Fetch video metadata without downloading anything.

    Args:
        url: Video URL
        settings: Application settings (binary path, timeout)
        logger: Logger instance for tracking

    Returns:
        VideoInfoResponse with title, duration (seconds), uploader, thumbnail

    Raises:
        VideoInfoError: yt-dlp exited non-zero or timed out
    """
    logger.info(f"Fetching video info for URL: {url}")

    args = []
    for field in VIDEO_INFO_FIELDS:
        args.extend(['--print', field])
    args.extend(['--no-download', url])

    result = run_ytdlp_binary(args, settings, timeout=settings.video_info_timeout)
    if not result.ok:
        logger.error(f"yt-dlp metadata lookup failed (code {result.returncode}): {result.stderr.strip()[:500]}")
        raise VideoInfoError("Could not fetch video information. Please check the URL.")

    info = parse_video_info(result.stdout)
    logger.info(f"Video info fetched: title={info.title!r}, duration={info.duration}s")
    return info


def format_section(start_seconds: int, end_seconds: int) -> str:
    """--download-sections value for a time range in seconds, e.g. "*10-40"."""
    return f"*{start_seconds}-{end_seconds}"


def download_audio_section(
    url: str,
    output_template: str,
    start_seconds: int,
    end_seconds: int,
    audio_format: str,
    audio_quality: str,
    settings: Settings
) -> ProcessResult:
    """
    Download only [start_seconds, end_seconds] of url and extract its audio.

    Args:
        url: Video URL
        output_template: yt-dlp -o template, normally ending in ".%(ext)s"
        start_seconds: Section start in seconds
        end_seconds: Section end in seconds
        audio_format: --audio-format value (mp3, m4a, ...)
        audio_quality: --audio-quality value (e.g. "192K")
        settings: Application settings (binary path, timeout)

    Returns:
        ProcessResult of the yt-dlp run
    """
    return run_ytdlp_binary([
        '-f', 'bestaudio/best',
        '-x', '--audio-format', audio_format,
        '--audio-quality', audio_quality,
        '--download-sections', format_section(start_seconds, end_seconds),
        '--no-playlist',
        '-o', output_template,
        url
    ], settings, timeout=settings.download_timeout)
