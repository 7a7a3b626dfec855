"""API routes for direct-to-storage uploads and downloads."""

import logging
import re
from uuid import uuid4

from fastapi import APIRouter
from sqlalchemy import select

from studpal.api.deps import CurrentUser, DbSession, Storage
from studpal.config import get_settings, sanitize_error
from studpal.db.models import GroupMember, SharedFile
from studpal.errors import DependencyError, NotFoundError, ValidationError
from studpal.schemas.files import (
    FileDownloadURLResponse,
    FileUploadURLRequest,
    FileUploadURLResponse,
)
from studpal.services.s3 import StorageError, user_prefix

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/files", tags=["files"])

DOWNLOAD_URL_TTL_SECONDS = 300

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@router.post("/upload-url", response_model=FileUploadURLResponse)
async def get_upload_url(request: FileUploadURLRequest, user: CurrentUser, storage: Storage):
    """
    Generate presigned POST data for uploading a file straight to storage.

    Flow:
    1. Client calls this endpoint with filename and content type
    2. Client uploads the file to S3 using the presigned data
    3. Client creates a pdf material (or group shared file) with file_id
    """
    if request.content_type not in settings.allowed_upload_types:
        raise ValidationError(f"Unsupported file type '{request.content_type}'")

    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", request.filename)
    file_key = f"{user_prefix(user.id)}files/{uuid4()}_{safe_name}"

    try:
        presigned = await storage.generate_presigned_upload_url(
            file_key=file_key,
            content_type=request.content_type,
        )
    except StorageError as e:
        logger.error("Failed to presign upload for user %s: %s", user.id, str(e), exc_info=True)
        raise DependencyError(sanitize_error(e, generic_message="Failed to prepare upload."))

    return FileUploadURLResponse(
        upload_url=presigned["url"],
        fields=presigned["fields"],
        file_id=file_key,
    )


@router.get("/download-url", response_model=FileDownloadURLResponse)
async def get_download_url(file_id: str, user: CurrentUser, db: DbSession, storage: Storage):
    """
    Generate a short-lived download URL.

    Allowed for files the user uploaded and for files shared in a group the
    user belongs to. Anything else is reported as not found.
    """
    if not file_id.startswith(user_prefix(user.id)):
        result = await db.execute(
            select(SharedFile.id)
            .join(GroupMember, GroupMember.group_id == SharedFile.group_id)
            .where(SharedFile.file_id == file_id, GroupMember.user_id == user.id)
            .limit(1)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("File not found")

    try:
        url = await storage.generate_presigned_download_url(file_id, expiration=DOWNLOAD_URL_TTL_SECONDS)
    except StorageError as e:
        logger.error("Failed to presign download of %s: %s", file_id, str(e), exc_info=True)
        raise DependencyError(sanitize_error(e, generic_message="Failed to prepare download."))

    return FileDownloadURLResponse(url=url, expires_in=DOWNLOAD_URL_TTL_SECONDS)
