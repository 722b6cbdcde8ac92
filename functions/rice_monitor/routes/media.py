from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from rice_monitor.dependencies import get_current_user, get_media_service
from rice_monitor.media import MediaService
from rice_monitor.schemas import MediaUploadResponse, MessageResponse
from shared.types import User

router = APIRouter(prefix="/media", tags=["media"])


@router.post("/upload", response_model=MediaUploadResponse)
async def upload_media(
    submission_id: str = Form(""),
    file_type: str = Form(""),
    file: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    service: MediaService = Depends(get_media_service),
):
    data = await file.read() if file is not None else None
    upload = await run_in_threadpool(
        service.upload,
        user,
        submission_id=submission_id,
        file_type=file_type,
        filename=file.filename if file is not None else None,
        data=data,
        content_type=file.content_type if file is not None else None,
    )
    return MediaUploadResponse(
        filename=upload.filename, url=upload.url, file_type=upload.file_type
    )


@router.get("/{filename:path}")
def get_media(
    filename: str,
    user: User = Depends(get_current_user),
    service: MediaService = Depends(get_media_service),
):
    return RedirectResponse(service.public_url(filename), status_code=308)


@router.delete("/{filename:path}", response_model=MessageResponse)
def delete_media(
    filename: str,
    user: User = Depends(get_current_user),
    service: MediaService = Depends(get_media_service),
):
    service.delete(user, filename)
    return MessageResponse(message="Media deleted successfully")
