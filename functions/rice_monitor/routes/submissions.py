from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from rice_monitor.dependencies import get_current_user, get_submission_service
from rice_monitor.row_codec import iter_csv
from rice_monitor.schemas import (
    CreateSubmissionRequest,
    MessageResponse,
    SubmissionListResponse,
    SubmissionResponse,
    parse_update_request,
)
from rice_monitor.submissions import DEFAULT_PAGE_SIZE, SubmissionService
from shared.types import User

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.get("", response_model=SubmissionListResponse)
def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    status: Optional[str] = None,
    field_id: Optional[str] = None,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Newest first. Non-admin users only see their own submissions.
    """
    items = service.list_submissions(
        user, page=page, limit=limit, status=status, field_id=field_id
    )
    return SubmissionListResponse(
        submissions=[
            SubmissionResponse.from_submission(submission, field)
            for submission, field in items
        ],
        page=page,
        limit=limit,
        count=len(items),
    )


@router.post("", response_model=SubmissionResponse, status_code=201)
def create_submission(
    payload: CreateSubmissionRequest,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    submission = service.create(user, payload)
    return SubmissionResponse.from_submission(submission, service.resolve_field(submission))


# Registered before /{submission_id} so "export" is not taken for an id.
@router.get("/export")
def export_submissions(
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    rows = service.export_rows(user)
    return StreamingResponse(
        iter_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=submissions.csv"},
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    submission_id: str,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    submission, field = service.get(user, submission_id)
    return SubmissionResponse.from_submission(submission, field)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Body: any subset of `UpdateSubmissionRequest`. Access is checked before
    the body is validated, so a non-owner gets 403 for any payload.
    """
    await run_in_threadpool(service.check_access, user, submission_id)
    payload = parse_update_request(await request.body())
    submission = await run_in_threadpool(service.update, user, submission_id, payload)
    field = await run_in_threadpool(service.resolve_field, submission)
    return SubmissionResponse.from_submission(submission, field)


@router.delete("/{submission_id}", response_model=MessageResponse)
def delete_submission(
    submission_id: str,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    service.delete(user, submission_id)
    return MessageResponse(message="Submission deleted successfully")
