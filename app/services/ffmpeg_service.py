"""
FFmpeg service module.

Cuts a downloaded audio segment to an exact offset and duration with a
stream copy (no re-encoding).
"""

from app.config import Settings
from app.utils.process_utils import ProcessResult, run_command


def trim_audio(
    input_path: str,
    output_path: str,
    offset_seconds: float,
    duration_seconds: float,
    settings: Settings
) -> ProcessResult:
    """
    Copy duration_seconds of input_path, starting offset_seconds in, to output_path.

    Args:
        input_path: Downloaded (buffered) audio file
        output_path: Destination file; overwritten if it exists
        offset_seconds: Start of the cut relative to the input file
        duration_seconds: Length of the cut
        settings: Application settings (binary path, timeout)

    Returns:
        ProcessResult of the ffmpeg run
    """
    ffmpeg_cmd = [
        settings.ffmpeg_binary,
        '-hide_banner',
        '-loglevel', 'error',
        '-y',  # Overwrite output file
        '-ss', str(offset_seconds),
        '-i', input_path,
        '-t', str(duration_seconds),
        '-c', 'copy',
        output_path
    ]
    return run_command(ffmpeg_cmd, settings.trim_timeout)
