from __future__ import annotations

from fastapi import APIRouter, Depends

from rice_monitor.dependencies import get_current_user, get_user_service
from rice_monitor.schemas import MessageResponse, UpdateUserRequest, UserResponse
from rice_monitor.users import UserService
from shared.types import User

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(users.get(user, user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    updated = users.update(
        user, user_id, name=payload.name, picture=payload.picture, role=payload.role
    )
    return UserResponse.from_user(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.delete(user, user_id)
    return MessageResponse(message="User deleted successfully")
