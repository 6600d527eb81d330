"""
Ringtone service module.

This module handles the core ringtone logic behind the /ringtones endpoints.

Creation Flow (RingtoneBuilder):
1. validating      - re-derive end time, check it against the video duration
2. resolving_name  - pick a display name that is free for the owner
3. downloading     - yt-dlp fetches only the requested section as audio
4. trimming        - optional ffmpeg cut to the exact range (PRECISE_TRIM)
5. persisting      - insert one ringtone row
6. done            - return the relative download URL

On failure in any stage every file written by the request is removed
(best-effort) and a generic RingtoneCreationError is raised; the tool output
is only logged.

Known gaps:
- Name resolution is read-then-write, so two concurrent creates with the
  same name from the same owner can pick the same suffix.
- The file write and the row insert are not atomic; a crash between them
  leaves an orphaned file.
"""

import os
import glob
import uuid
import logging
from enum import Enum
from typing import List, Optional, Tuple, Union

from app.config import Settings, MIN_RINGTONE_SECONDS, MAX_RINGTONE_SECONDS
from app.models import (
    CreateRingtoneRequest,
    CreateRingtoneResponse,
    FieldError,
    Ringtone,
    UpdateRingtoneResponse,
)
from app.services.ffmpeg_service import trim_audio
from app.services.ringtone_repository import RingtoneRepository
from app.services.ytdlp_service import download_audio_section
from app.utils.filename_utils import build_download_url, get_audio_extension, resolve_unique_file_name


Logger = Union[logging.Logger, logging.LoggerAdapter]

CREATION_FAILED_MESSAGE = "Failed to create ringtone. Check URL and try again."


# =============================================================================
# Errors
# =============================================================================

class RingtoneValidationError(Exception):
    """Input rejected before any side effect; carries field-level errors."""

    def __init__(self, errors: List[FieldError]):
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = errors


class RingtoneNotFoundError(Exception):
    """No ringtone with the requested id."""


class RingtoneForbiddenError(Exception):
    """The ringtone belongs to another user."""


class RingtoneCreationError(Exception):
    """External tool or storage failure while building a ringtone."""

    def __init__(self, stage: "BuildStage", message: str = CREATION_FAILED_MESSAGE):
        super().__init__(message)
        self.stage = stage


# =============================================================================
# Helper Functions
# =============================================================================

def check_time_range(
    start_seconds: int,
    duration_seconds: int,
    video_duration: Optional[float] = None
) -> List[FieldError]:
    """
    Validate a clip window. Returns an empty list when the window is valid.

    video_duration is advisory (client supplied); it is only checked when > 0.
    """
    errors = []
    if start_seconds < 0:
        errors.append(FieldError(field="startSeconds", message="Start time must be 0 or greater"))
    if duration_seconds < MIN_RINGTONE_SECONDS:
        errors.append(FieldError(
            field="durationSeconds",
            message=f"Duration must be at least {MIN_RINGTONE_SECONDS} seconds"
        ))
    elif duration_seconds > MAX_RINGTONE_SECONDS:
        errors.append(FieldError(
            field="durationSeconds",
            message=f"Duration cannot exceed {MAX_RINGTONE_SECONDS} seconds"
        ))

    end_seconds = start_seconds + duration_seconds
    if video_duration and end_seconds > video_duration:
        errors.append(FieldError(
            field="durationSeconds",
            message=f"End time ({end_seconds}s) cannot exceed video duration ({video_duration:g}s)"
        ))
    return errors


def get_user_dir(settings: Settings, user_id: str) -> str:
    """Per-user output directory under the public downloads root."""
    return os.path.join(settings.downloads_dir, user_id)


def resolve_file_path(settings: Settings, download_url: str) -> str:
    """Map a /downloads/... URL back to its path under downloads_dir."""
    relative = download_url.split("/downloads/", 1)[-1]
    return os.path.join(settings.downloads_dir, *relative.split("/"))


def _remove_file(path: str, logger: Logger) -> bool:
    """Delete path, logging instead of raising. Returns True if a file was removed."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not delete file {path}: {e}")
        return False


def _is_non_empty_file(path: str) -> bool:
    return os.path.isfile(path) and os.path.getsize(path) > 0


def resolve_free_file_name(
    desired: str,
    existing_names: List[str],
    user_dir: str,
    extension: str,
    logger: Logger,
    current_name: Optional[str] = None
) -> str:
    """
    Resolve a unique display name whose file path is also free on disk.

    A file left behind without a record (see the write/insert gap above)
    counts as taken, so it is never overwritten.
    """
    taken = list(existing_names)
    while True:
        name = resolve_unique_file_name(desired, taken, current_name=current_name)
        if current_name is not None and name.casefold() == current_name.casefold():
            return name
        path = os.path.join(user_dir, f"{name}.{extension}")
        if not os.path.exists(path):
            return name
        logger.warning(f"File exists without a record, skipping name: {path}")
        taken.append(name)


# =============================================================================
# Creation
# =============================================================================

class BuildStage(str, Enum):
    VALIDATING = "validating"
    RESOLVING_NAME = "resolving_name"
    DOWNLOADING = "downloading"
    TRIMMING = "trimming"
    PERSISTING = "persisting"
    DONE = "done"
    ERROR = "error"


class RingtoneBuilder:
    """
    Builds one ringtone for one request.

    The builder tracks its current stage and every path it may have written,
    so a failure in any stage can clean up after itself.
    """

    def __init__(self, repository: RingtoneRepository, settings: Settings, logger: Logger):
        self.repository = repository
        self.settings = settings
        self.logger = logger
        self.stage = BuildStage.VALIDATING
        self.ringtone_id = str(uuid.uuid4())
        self._written: List[str] = []
        self._temp_stem: Optional[str] = None

    def _advance(self, stage: BuildStage) -> None:
        self.stage = stage
        self.logger.info(f"Ringtone {self.ringtone_id}: {stage.value}")

    def _cleanup(self) -> None:
        paths = list(self._written)
        if self._temp_stem:
            paths.extend(glob.glob(glob.escape(self._temp_stem) + ".*"))
        for path in dict.fromkeys(paths):
            if _remove_file(path, self.logger):
                self.logger.info(f"Removed partial file: {path}")

    def _fail(self, reason: str) -> RingtoneCreationError:
        failed_stage = self.stage
        self.logger.error(f"Ringtone {self.ringtone_id} failed during {failed_stage.value}: {reason}")
        self.stage = BuildStage.ERROR
        self._cleanup()
        return RingtoneCreationError(failed_stage)

    def build(self, request: CreateRingtoneRequest, user_id: str) -> CreateRingtoneResponse:
        """
        Run every stage for request on behalf of user_id.

        Raises:
            RingtoneValidationError: time range rejected (no side effects)
            RingtoneCreationError: download, trim or insert failed (files cleaned up)
        """
        self._advance(BuildStage.VALIDATING)
        start_seconds = request.start_seconds
        end_seconds = request.end_seconds
        errors = check_time_range(start_seconds, request.duration_seconds, request.video_duration)
        if errors:
            self.stage = BuildStage.ERROR
            raise RingtoneValidationError(errors)

        self._advance(BuildStage.RESOLVING_NAME)
        try:
            existing_names = self.repository.list_file_names(user_id)
        except Exception as e:
            raise self._fail(f"could not read existing names: {e}")
        extension = get_audio_extension(request.audio_format)
        user_dir = get_user_dir(self.settings, user_id)
        file_name = resolve_free_file_name(request.file_name, existing_names, user_dir, extension, self.logger)
        if file_name != request.file_name:
            self.logger.info(f"File name {request.file_name!r} taken, using {file_name!r}")

        os.makedirs(user_dir, exist_ok=True)
        self._temp_stem = os.path.join(user_dir, f".{self.ringtone_id}")
        downloaded_path = f"{self._temp_stem}.{extension}"
        self._written.append(downloaded_path)

        self._advance(BuildStage.DOWNLOADING)
        window_start, window_end = start_seconds, end_seconds
        if self.settings.precise_trim:
            window_start = max(0, start_seconds - self.settings.trim_buffer_seconds)
            window_end = end_seconds + self.settings.trim_buffer_seconds
        self.logger.info(f"Downloading time range: {window_start}s-{window_end}s of {request.url}")

        result = download_audio_section(
            request.url,
            f"{self._temp_stem}.%(ext)s",
            window_start,
            window_end,
            request.audio_format,
            request.audio_quality,
            self.settings
        )
        if not result.ok:
            raise self._fail(f"yt-dlp exited with {result.returncode}: {result.stderr.strip()[:500]}")
        if not _is_non_empty_file(downloaded_path):
            raise self._fail("yt-dlp finished but the output file is missing or empty")

        if self.settings.precise_trim:
            self._advance(BuildStage.TRIMMING)
            trimmed_path = f"{self._temp_stem}.trim.{extension}"
            self._written.append(trimmed_path)
            result = trim_audio(
                downloaded_path,
                trimmed_path,
                start_seconds - window_start,
                request.duration_seconds,
                self.settings
            )
            if not result.ok:
                raise self._fail(f"ffmpeg exited with {result.returncode}: {result.stderr.strip()[:500]}")
            if not _is_non_empty_file(trimmed_path):
                raise self._fail("ffmpeg finished but the trimmed file is missing or empty")
            try:
                os.replace(trimmed_path, downloaded_path)
            except OSError as e:
                raise self._fail(f"could not replace download with trimmed file: {e}")

        final_path = os.path.join(user_dir, f"{file_name}.{extension}")
        try:
            os.replace(downloaded_path, final_path)
        except OSError as e:
            raise self._fail(f"could not move output into place: {e}")
        self._written.append(final_path)
        self.logger.info(f"File created: {final_path} ({round(os.path.getsize(final_path) / 1024)}KB)")

        self._advance(BuildStage.PERSISTING)
        download_url = build_download_url(user_id, file_name, extension)
        try:
            self.repository.insert({
                "id": self.ringtone_id,
                "file_name": file_name,
                "original_url": request.url,
                "start_time": start_seconds,
                "end_time": end_seconds,
                "format": request.audio_format,
                "quality": request.audio_quality,
                "download_url": download_url,
                "user_id": user_id,
            })
        except Exception as e:
            raise self._fail(f"database insert failed: {e}")

        self._advance(BuildStage.DONE)
        self.logger.info(f"Ringtone created: {file_name!r} -> {download_url}")
        return CreateRingtoneResponse(download_url=download_url)


def create_ringtone(
    request: CreateRingtoneRequest,
    user_id: str,
    repository: RingtoneRepository,
    settings: Settings,
    logger: Logger
) -> CreateRingtoneResponse:
    """Build a ringtone for user_id. See RingtoneBuilder.build for the errors raised."""
    logger.info(
        f"Creating ringtone: file_name={request.file_name!r}, start={request.start_seconds}s, "
        f"duration={request.duration_seconds}s, user={user_id}"
    )
    return RingtoneBuilder(repository, settings, logger).build(request, user_id)


# =============================================================================
# List / Update / Delete
# =============================================================================

def list_ringtones(repository: RingtoneRepository, user_id: str) -> List[Ringtone]:
    """All ringtones owned by user_id, newest first."""
    return repository.list_for_user(user_id)


def get_owned_ringtone(repository: RingtoneRepository, ringtone_id: str, user_id: str) -> Ringtone:
    """
    Load a ringtone and check ownership.

    Raises:
        RingtoneNotFoundError: No record with ringtone_id
        RingtoneForbiddenError: Record owned by another user
    """
    ringtone = repository.get(ringtone_id)
    if ringtone is None:
        raise RingtoneNotFoundError("Ringtone not found")
    if ringtone.user_id != user_id:
        raise RingtoneForbiddenError("You can only modify your own ringtones")
    return ringtone


def rename_ringtone(
    ringtone_id: str,
    file_name: str,
    user_id: str,
    repository: RingtoneRepository,
    settings: Settings,
    logger: Logger
) -> UpdateRingtoneResponse:
    """
    Rename a ringtone's display name and its backing file.

    The new name goes through the same uniqueness resolution as creation:
    the ringtone's own current name does not count as taken, while a name
    whose file already exists on disk does. A missing backing
    file is logged and the record is still renamed.
    """
    ringtone = get_owned_ringtone(repository, ringtone_id, user_id)
    logger.info(f"Updating ringtone: id={ringtone_id}, file_name={file_name!r}")

    extension = os.path.splitext(ringtone.download_url)[1].lstrip(".") or get_audio_extension(ringtone.format)
    new_name = resolve_free_file_name(
        file_name,
        repository.list_file_names(user_id),
        get_user_dir(settings, user_id),
        extension,
        logger,
        current_name=ringtone.file_name
    )
    new_url = build_download_url(user_id, new_name, extension)
    old_path = resolve_file_path(settings, ringtone.download_url)
    new_path = resolve_file_path(settings, new_url)

    moved = False
    if old_path != new_path:
        if os.path.exists(old_path):
            os.replace(old_path, new_path)
            moved = True
        else:
            logger.warning(f"Backing file missing, renaming record only: {old_path}")

    try:
        repository.update_file_name(ringtone_id, new_name, new_url)
    except Exception:
        if moved:
            os.replace(new_path, old_path)
        raise

    logger.info(f"Ringtone updated: id={ringtone_id}, file_name={new_name!r}")
    return UpdateRingtoneResponse(file_name=new_name, download_url=new_url)


def delete_ringtone(
    ringtone_id: str,
    user_id: str,
    repository: RingtoneRepository,
    settings: Settings,
    logger: Logger
) -> None:
    """
    Delete the record, then best-effort delete its file.

    The database is the source of truth for listings, so a file that is
    already gone (or cannot be removed) does not fail the request.
    """
    ringtone = get_owned_ringtone(repository, ringtone_id, user_id)
    logger.info(f"Deleting ringtone: id={ringtone_id}")

    repository.delete(ringtone_id)

    file_path = resolve_file_path(settings, ringtone.download_url)
    if _remove_file(file_path, logger):
        logger.info(f"File deleted: {file_path}")
    else:
        logger.warning(f"Could not delete file (file may not exist): {file_path}")

    logger.info(f"Ringtone deleted: id={ringtone_id}")


def get_ringtone_file(
    ringtone_id: str,
    user_id: str,
    repository: RingtoneRepository,
    settings: Settings
) -> Tuple[Ringtone, str]:
    """
    Return the owned ringtone and the path of its file.

    Raises:
        RingtoneNotFoundError: No record, or the file no longer exists
        RingtoneForbiddenError: Record owned by another user
    """
    ringtone = get_owned_ringtone(repository, ringtone_id, user_id)
    file_path = resolve_file_path(settings, ringtone.download_url)
    if not os.path.isfile(file_path):
        raise RingtoneNotFoundError("Ringtone file not found")
    return ringtone, file_path
