"""
Ringtone router.

Provides endpoints for:
- POST   /ringtones/video-info: Title, duration, uploader and thumbnail of a video
- POST   /ringtones: Cut a ringtone from a video and store it for the caller
- GET    /ringtones: List the caller's ringtones, newest first
- PATCH  /ringtones/{id}: Rename a ringtone
- DELETE /ringtones/{id}: Delete a ringtone and its file
- GET    /ringtones/{id}/download: Download a ringtone as an attachment

Endpoints are sync so the blocking yt-dlp/ffmpeg calls run in FastAPI's threadpool.
"""

import logging
import os
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import FileResponse, JSONResponse

from app.config import Settings, get_settings
from app.dependencies import get_current_user_id, get_logger
from app.models import (
    CreateRingtoneRequest,
    CreateRingtoneResponse,
    DeleteRingtoneResponse,
    Ringtone,
    UpdateRingtoneRequest,
    UpdateRingtoneResponse,
    ValidationErrorResponse,
    VideoInfoRequest,
    VideoInfoResponse,
)
from app.services.ringtone_repository import RingtoneRepository, get_ringtone_repository
from app.services.ringtone_service import (
    CREATION_FAILED_MESSAGE,
    RingtoneCreationError,
    RingtoneForbiddenError,
    RingtoneNotFoundError,
    RingtoneValidationError,
    create_ringtone,
    delete_ringtone,
    get_ringtone_file,
    list_ringtones,
    rename_ringtone,
)
from app.services.ytdlp_service import VideoInfoError, fetch_video_info
from app.utils.filename_utils import encode_content_disposition_filename


router = APIRouter(prefix="/ringtones", tags=["Ringtones"])


def _ownership_http_error(error: Exception) -> HTTPException:
    if isinstance(error, RingtoneNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=403, detail=str(error))


@router.post("/video-info", response_model=VideoInfoResponse)
def get_video_info(
    request: VideoInfoRequest = Body(...),
    _: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    logger: logging.LoggerAdapter = Depends(get_logger)
):
    """
    Fetch video metadata without downloading.

    The client uses the duration to bound its time-range control and sends it
    back as videoDuration when creating the ringtone.
    """
    try:
        return fetch_video_info(request.url, settings, logger)
    except VideoInfoError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "",
    response_model=CreateRingtoneResponse,
    responses={400: {"model": ValidationErrorResponse}}
)
def create_ringtone_endpoint(
    request: CreateRingtoneRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    repository: RingtoneRepository = Depends(get_ringtone_repository),
    settings: Settings = Depends(get_settings),
    logger: logging.LoggerAdapter = Depends(get_logger)
):
    """
    Create a ringtone from a section of a video.

    Returns the relative download URL: /downloads/{userId}/{fileName}.{ext}.
    If the name is already used by the caller a numeric suffix is appended.
    """
    try:
        return create_ringtone(request, user_id, repository, settings, logger)
    except RingtoneValidationError as e:
        return JSONResponse(
            status_code=400,
            content=ValidationErrorResponse(errors=e.errors).model_dump()
        )
    except RingtoneCreationError:
        raise HTTPException(status_code=500, detail=CREATION_FAILED_MESSAGE)
    except Exception as e:
        logger.exception(f"Unexpected error creating ringtone: {e}")
        raise HTTPException(status_code=500, detail=CREATION_FAILED_MESSAGE)


@router.get("", response_model=List[Ringtone])
def get_ringtones(
    user_id: str = Depends(get_current_user_id),
    repository: RingtoneRepository = Depends(get_ringtone_repository),
    logger: logging.LoggerAdapter = Depends(get_logger)
):
    """List the caller's ringtones, newest first."""
    logger.info(f"Fetching ringtones for user: {user_id}")
    try:
        ringtones = list_ringtones(repository, user_id)
    except Exception as e:
        logger.error(f"Error fetching ringtones: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch ringtones")
    logger.info(f"Found ringtones: {len(ringtones)}")
    return ringtones


@router.patch("/{ringtone_id}", response_model=UpdateRingtoneResponse)
def update_ringtone(
    ringtone_id: str,
    request: UpdateRingtoneRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    repository: RingtoneRepository = Depends(get_ringtone_repository),
    settings: Settings = Depends(get_settings),
    logger: logging.LoggerAdapter = Depends(get_logger)
):
    """Rename a ringtone owned by the caller (404 if absent, 403 if not the owner)."""
    try:
        return rename_ringtone(ringtone_id, request.file_name, user_id, repository, settings, logger)
    except (RingtoneNotFoundError, RingtoneForbiddenError) as e:
        raise _ownership_http_error(e)
    except Exception as e:
        logger.error(f"Error updating ringtone: {e}")
        raise HTTPException(status_code=500, detail="Failed to update ringtone")


@router.delete("/{ringtone_id}", response_model=DeleteRingtoneResponse)
def delete_ringtone_endpoint(
    ringtone_id: str,
    user_id: str = Depends(get_current_user_id),
    repository: RingtoneRepository = Depends(get_ringtone_repository),
    settings: Settings = Depends(get_settings),
    logger: logging.LoggerAdapter = Depends(get_logger)
):
    """Delete a ringtone owned by the caller; a missing file does not fail the request."""
    try:
        delete_ringtone(ringtone_id, user_id, repository, settings, logger)
    except (RingtoneNotFoundError, RingtoneForbiddenError) as e:
        raise _ownership_http_error(e)
    except Exception as e:
        logger.error(f"Error deleting ringtone: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete ringtone")
    return DeleteRingtoneResponse()


@router.get("/{ringtone_id}/download")
def download_ringtone(
    ringtone_id: str,
    user_id: str = Depends(get_current_user_id),
    repository: RingtoneRepository = Depends(get_ringtone_repository),
    settings: Settings = Depends(get_settings)
):
    """Stream a ringtone file as an attachment named after its display name."""
    try:
        ringtone, file_path = get_ringtone_file(ringtone_id, user_id, repository, settings)
    except (RingtoneNotFoundError, RingtoneForbiddenError) as e:
        raise _ownership_http_error(e)

    filename = f"{ringtone.file_name}{os.path.splitext(file_path)[1]}"
    return FileResponse(
        file_path,
        media_type="application/octet-stream",
        headers={"Content-Disposition": encode_content_disposition_filename(filename)}
    )
