from __future__ import annotations

from fastapi import APIRouter, Depends

from rice_monitor.dependencies import get_current_user, get_field_service
from rice_monitor.fields import FieldService
from rice_monitor.schemas import (
    CreateFieldRequest,
    FieldResponse,
    MessageResponse,
    UpdateFieldRequest,
)
from shared.types import User

router = APIRouter(prefix="/fields", tags=["fields"])


@router.get("", response_model=list[FieldResponse])
def list_fields(
    user: User = Depends(get_current_user),
    fields: FieldService = Depends(get_field_service),
):
    return [FieldResponse.from_field(field) for field in fields.list_fields()]


@router.post("", response_model=FieldResponse, status_code=201)
def create_field(
    payload: CreateFieldRequest,
    user: User = Depends(get_current_user),
    fields: FieldService = Depends(get_field_service),
):
    return FieldResponse.from_field(fields.create(user, payload.model_dump()))


@router.get("/{field_id}", response_model=FieldResponse)
def get_field(
    field_id: str,
    user: User = Depends(get_current_user),
    fields: FieldService = Depends(get_field_service),
):
    return FieldResponse.from_field(fields.get(field_id))


@router.put("/{field_id}", response_model=FieldResponse)
def update_field(
    field_id: str,
    payload: UpdateFieldRequest,
    user: User = Depends(get_current_user),
    fields: FieldService = Depends(get_field_service),
):
    updated = fields.update(user, field_id, payload.model_dump(exclude_unset=True))
    return FieldResponse.from_field(updated)


@router.delete("/{field_id}", response_model=MessageResponse)
def delete_field(
    field_id: str,
    user: User = Depends(get_current_user),
    fields: FieldService = Depends(get_field_service),
):
    fields.delete(user, field_id)
    return MessageResponse(message="Field deleted successfully")
