"""
Models package for API request/response validation.

This package contains Pydantic models used throughout the application
for validating API requests and responses.
"""

from .schemas import (
    VideoInfoRequest,
    VideoInfoResponse,
    CreateRingtoneRequest,
    CreateRingtoneResponse,
    UpdateRingtoneRequest,
    UpdateRingtoneResponse,
    DeleteRingtoneResponse,
    Ringtone,
    FieldError,
    ValidationErrorResponse,
    field_errors_from_pydantic,
)

__all__ = [
    "VideoInfoRequest",
    "VideoInfoResponse",
    "CreateRingtoneRequest",
    "CreateRingtoneResponse",
    "UpdateRingtoneRequest",
    "UpdateRingtoneResponse",
    "DeleteRingtoneResponse",
    "Ringtone",
    "FieldError",
    "ValidationErrorResponse",
    "field_errors_from_pydantic",
]
