"""
Pydantic models for request/response validation.

Field names are snake_case in Python and camelCase on the wire (both are
accepted on input); responses are serialized with their camelCase aliases.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from app.config import (
    AUDIO_FORMATS,
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_AUDIO_QUALITY,
    MAX_FILE_NAME_LENGTH,
    MAX_RINGTONE_SECONDS,
    MIN_RINGTONE_SECONDS,
)
from app.utils.filename_utils import URL_UNSAFE_FILENAME_CHARS, find_invalid_filename_chars


AudioFormat = Literal[AUDIO_FORMATS]

_http_url_adapter = TypeAdapter(HttpUrl)


def validate_source_url(value: str) -> str:
    """Check value is an absolute http(s) URL and return it unchanged."""
    try:
        _http_url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("Please enter a valid URL")
    return value


def validate_file_name(value: str) -> str:
    """Reject names with characters that are unsafe in a path on any platform or in a download URL."""
    invalid = find_invalid_filename_chars(value)
    if invalid:
        shown = " ".join(repr(char) for char in invalid)
        raise ValueError(f"File name contains invalid characters: {shown}")
    url_unsafe = [char for char in URL_UNSAFE_FILENAME_CHARS if char in value]
    if url_unsafe:
        shown = " ".join(repr(char) for char in url_unsafe)
        raise ValueError(f"File name cannot contain {shown}: it would break the download link")
    if value in (".", ".."):
        raise ValueError("File name cannot be '.' or '..'")
    return value


class CamelModel(BaseModel):
    """Base model: camelCase aliases, whitespace stripped from strings."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class VideoInfoRequest(CamelModel):
    """Request model for metadata lookup of a source video."""
    url: str = Field(..., description="Video URL")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_source_url(value)


class VideoInfoResponse(CamelModel):
    """Metadata printed by yt-dlp: title, duration, uploader, thumbnail."""
    title: str
    duration: int = Field(..., description="Video duration in seconds (0 if unknown)")
    uploader: str
    thumbnail: Optional[str] = None


class CreateRingtoneRequest(CamelModel):
    """Request model for ringtone creation: source URL, time window, name and output format."""
    url: str = Field(..., description="Video URL to cut the ringtone from")
    start_seconds: int = Field(..., ge=0, description="Start of the clip in the source (seconds)")
    duration_seconds: int = Field(
        ...,
        ge=MIN_RINGTONE_SECONDS,
        le=MAX_RINGTONE_SECONDS,
        description="Clip length in seconds"
    )
    file_name: str = Field(..., min_length=1, max_length=MAX_FILE_NAME_LENGTH, description="Display file name")
    video_duration: Optional[float] = Field(
        None,
        ge=0,
        description="Source duration as reported by /ringtones/video-info (advisory)"
    )
    audio_format: AudioFormat = Field(DEFAULT_AUDIO_FORMAT, description="yt-dlp --audio-format value")
    audio_quality: str = Field(
        DEFAULT_AUDIO_QUALITY,
        pattern=r"^\d{1,4}[Kk]?$",
        description="Bitrate like '192K' or VBR level 0-10"
    )

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return validate_source_url(value)

    @field_validator("file_name")
    @classmethod
    def check_file_name(cls, value: str) -> str:
        return validate_file_name(value)

    @property
    def end_seconds(self) -> int:
        return self.start_seconds + self.duration_seconds


class CreateRingtoneResponse(CamelModel):
    download_url: str


class UpdateRingtoneRequest(CamelModel):
    """Request model for renaming a ringtone."""
    file_name: str = Field(..., min_length=1, max_length=MAX_FILE_NAME_LENGTH)

    @field_validator("file_name")
    @classmethod
    def check_file_name(cls, value: str) -> str:
        return validate_file_name(value)


class UpdateRingtoneResponse(CamelModel):
    success: bool = True
    file_name: str
    download_url: str


class DeleteRingtoneResponse(CamelModel):
    success: bool = True


class Ringtone(CamelModel):
    """Stored ringtone record."""
    id: str
    file_name: str
    original_url: str
    start_time: int
    end_time: int
    format: str = DEFAULT_AUDIO_FORMAT
    quality: str = DEFAULT_AUDIO_QUALITY
    download_url: str
    user_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FieldError(BaseModel):
    """One offending input field."""
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Body returned with HTTP 400 for invalid input."""
    detail: str = "Invalid request"
    errors: List[FieldError]


def field_errors_from_pydantic(errors: List[dict]) -> List[FieldError]:
    """
    Convert pydantic/FastAPI error dicts to FieldError entries.

    The request location prefix ("body", "query", "path") is dropped and the
    "Value error, " prefix pydantic adds to custom validator messages is removed.
    """
    field_errors = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        field_errors.append(FieldError(field=".".join(loc) or "body", message=message))
    return field_errors
