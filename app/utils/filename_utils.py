"""
Filename utility functions for ringtone files.

This module provides utilities for:
- Detecting characters that are not allowed in ringtone file names
- Resolving a free display name for an owner (" 1", " 2", ... suffixes)
- Mapping audio formats to file extensions
- Building public download URLs
- Encoding filenames for Content-Disposition headers
"""

import unicodedata
from typing import Iterable, List, Optional
from urllib.parse import quote

from app.config import MAX_FILE_NAME_LENGTH


INVALID_FILENAME_CHARS = '<>:"/\\|?*'

# Characters that would change the meaning of a raw /downloads/... URL
URL_UNSAFE_FILENAME_CHARS = "#%"

# yt-dlp writes these formats with a different extension
FORMAT_EXTENSIONS = {
    "aac": "m4a",
    "vorbis": "ogg",
}


def find_invalid_filename_chars(filename: str) -> List[str]:
    """Return the disallowed characters present in filename, in order of first appearance."""
    found = []
    for char in filename:
        if (char in INVALID_FILENAME_CHARS or unicodedata.category(char) == "Cc") and char not in found:
            found.append(char)
    return found


def _with_suffix(desired: str, counter: int, max_length: int) -> str:
    suffix = f" {counter}"
    base = desired[:max(max_length - len(suffix), 1)].rstrip() or desired[:1]
    return f"{base}{suffix}"


def resolve_unique_file_name(
    desired: str,
    existing_names: Iterable[str],
    current_name: Optional[str] = None,
    max_length: int = MAX_FILE_NAME_LENGTH
) -> str:
    """
    Return desired, or desired with the first free numeric suffix.

    Comparison is case-insensitive. ``current_name`` is the caller's own
    name when renaming, so keeping (or re-casing) it is not a collision.
    The base is shortened so a suffixed name stays within max_length.

    Example:
        >>> resolve_unique_file_name("My Clip", ["my clip", "My Clip 1"])
        'My Clip 2'
    """
    taken = {name.casefold() for name in existing_names}
    if current_name is not None:
        taken.discard(current_name.casefold())

    if desired.casefold() not in taken:
        return desired

    counter = 1
    while _with_suffix(desired, counter, max_length).casefold() in taken:
        counter += 1
    return _with_suffix(desired, counter, max_length)


def get_audio_extension(audio_format: str) -> str:
    """File extension yt-dlp produces for an --audio-format value."""
    return FORMAT_EXTENSIONS.get(audio_format, audio_format)


def build_download_url(user_id: str, file_name: str, extension: str) -> str:
    """Relative public URL for a ringtone file: /downloads/{user_id}/{file_name}.{ext}"""
    return f"/downloads/{user_id}/{file_name}.{extension}"


def encode_content_disposition_filename(filename: str) -> str:
    """Encode filename for Content-Disposition header following RFC 5987."""
    # For ASCII filenames, use simple format
    try:
        filename.encode('ascii')
        # Escape quotes for the simple format
        safe_filename = filename.replace('"', '\\"')
        return f'attachment; filename="{safe_filename}"'
    except UnicodeEncodeError:
        # For Unicode filenames, use RFC 5987 encoding
        encoded_filename = quote(filename, safe='')
        # Also provide ASCII fallback
        ascii_filename = unicodedata.normalize('NFD', filename)
        ascii_filename = ascii_filename.encode('ascii', 'ignore').decode('ascii')
        ascii_filename = ascii_filename.replace('"', '\\"') or 'ringtone'
        return f'attachment; filename="{ascii_filename}"; filename*=UTF-8\'\'{encoded_filename}'
