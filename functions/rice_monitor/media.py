"""
Media uploads for submissions.

Files are written to object storage under `<submission_id>/<uuid>_<timestamp><ext>`
and the public URL is appended to the submission's image, video or audio
list in one atomic read-modify-write. Attaching media does not resync the
spreadsheet row; the row picks up the URL on the next update.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from rice_monitor.db import DbClient
from rice_monitor.errors import (
    DeleteFailedError,
    ForbiddenError,
    InvalidFileTypeError,
    NotFoundError,
    UploadFailedError,
    ValidationError,
)
from rice_monitor.storage import StorageClient
from shared.types import MediaKind, User

logger = logging.getLogger(__name__)

# Uploads made before the submission exists use ids with this prefix.
TEMP_SUBMISSION_PREFIX = "temp_"

ALLOWED_EXTENSIONS = {
    MediaKind.IMAGE: {".jpg", ".jpeg", ".png", ".webp"},
    MediaKind.VIDEO: {".mp4", ".mov", ".webm"},
    MediaKind.AUDIO: {".mp3", ".wav", ".ogg", ".webm"},
}


@dataclass
class MediaUpload:
    filename: str
    url: str
    file_type: str


def is_allowed(filename: str, kind: MediaKind) -> bool:
    ext = os.path.splitext(filename)[1].lower()
    return ext in ALLOWED_EXTENSIONS[kind]


def object_key(submission_id: str, filename: str, now: Optional[datetime] = None) -> str:
    ext = os.path.splitext(filename)[1]
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{submission_id}/{uuid.uuid4()}_{stamp}{ext}"


class MediaService:
    def __init__(self, db: DbClient, storage: StorageClient):
        self.db = db
        self.storage = storage

    def _check_access(self, actor: User, submission_id: str) -> None:
        submission = self.db.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        if submission.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("You do not have access to this submission")

    def upload(
        self,
        actor: User,
        *,
        submission_id: str,
        file_type: str,
        filename: Optional[str],
        data: Optional[bytes],
        content_type: Optional[str] = None,
    ) -> MediaUpload:
        if not submission_id:
            raise ValidationError("submission_id is required")
        if not file_type:
            raise ValidationError("file_type is required")
        if data is None:
            raise ValidationError("No file uploaded")
        try:
            kind = MediaKind(file_type)
        except ValueError:
            raise InvalidFileTypeError(f"Unsupported file type for {file_type}")
        if not filename or not is_allowed(filename, kind):
            raise InvalidFileTypeError(f"Unsupported file type for {file_type}")

        attach = not submission_id.startswith(TEMP_SUBMISSION_PREFIX)
        if attach:
            self._check_access(actor, submission_id)

        key = object_key(submission_id, filename)
        try:
            url = self.storage.upload_bytes(key, data, content_type)
        except Exception as exc:
            logger.exception("[%s] Failed to upload %s", submission_id, key)
            raise UploadFailedError("Failed to upload file") from exc

        if attach:
            submission = self.db.append_submission_media(submission_id, kind, url)
            if submission is None:
                raise NotFoundError("Submission not found")
            logger.info("[%s] Attached %s %s", submission_id, kind.value, key)
        return MediaUpload(filename=key, url=url, file_type=kind.value)

    def public_url(self, filename: str) -> str:
        return self.storage.public_url(filename)

    def delete(self, actor: User, filename: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Access denied")
        try:
            self.storage.delete(filename)
        except FileNotFoundError:
            raise NotFoundError("Media not found")
        except Exception as exc:
            logger.exception("Failed to delete media %s", filename)
            raise DeleteFailedError("Failed to delete media") from exc
