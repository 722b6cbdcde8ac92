"""
User accounts: sign-in provisioning and self/admin management.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from rice_monitor.auth import GoogleTokenInfo
from rice_monitor.db import DbClient
from rice_monitor.errors import ForbiddenError, NotFoundError, ValidationError
from shared.types import Role, User, utcnow

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: DbClient):
        self.db = db

    def sign_in(self, info: GoogleTokenInfo) -> User:
        """Find the user by email, creating an observer on first sign-in."""
        user = self.db.find_user_by_email(info.email)
        now = utcnow()
        if user is None:
            user = User(
                id=str(uuid.uuid4()),
                email=info.email,
                name=info.email,
                role=Role.OBSERVER.value,
                created_at=now,
                updated_at=now,
            )
            logger.info("Created user %s for %s", user.id, user.email)
        user.last_login_at = now
        self.db.save_user(user)
        return user

    def require(self, user_id: str) -> User:
        user = self.db.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def get(self, actor: User, user_id: str) -> User:
        if actor.id != user_id and not actor.is_admin:
            raise ForbiddenError("You can only view your own profile")
        return self.require(user_id)

    def update(
        self,
        actor: User,
        user_id: str,
        *,
        name: Optional[str] = None,
        picture: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        if actor.id != user_id and not actor.is_admin:
            raise ForbiddenError("You can only update your own profile")
        user = self.require(user_id)
        if role is not None:
            if not actor.is_admin:
                raise ForbiddenError("Only administrators can change roles")
            if role not in {r.value for r in Role}:
                raise ValidationError(f"Unknown role: {role}")
            user.role = role
        if name is not None:
            user.name = name
        if picture is not None:
            user.picture = picture
        user.updated_at = utcnow()
        self.db.save_user(user)
        return user

    def delete(self, actor: User, user_id: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Only administrators can delete users")
        if not self.db.delete_user(user_id):
            raise NotFoundError("User not found")
