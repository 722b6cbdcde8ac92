"""
Registered rice fields. Fields are shared reference data; only the owner or
an administrator may change one.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict

from rice_monitor.db import DbClient
from rice_monitor.errors import ForbiddenError, NotFoundError, ValidationError
from shared.types import Field, Location, User, utcnow

_UPDATABLE = ("name", "location", "rice_variety", "tentative_date", "area")


class FieldService:
    def __init__(self, db: DbClient):
        self.db = db

    def list_fields(self) -> list[Field]:
        return self.db.list_fields()

    def get(self, field_id: str) -> Field:
        field = self.db.get_field(field_id)
        if field is None:
            raise NotFoundError("Field not found")
        return field

    def create(self, actor: User, data: Dict[str, Any]) -> Field:
        name = (data.get("name") or "").strip()
        location = (data.get("location") or "").strip()
        if not name or not location:
            raise ValidationError("name and location are required")
        now = utcnow()
        field = Field(
            id=str(uuid.uuid4()),
            name=name,
            location=location,
            coordinates=Location(**(data.get("coordinates") or {})),
            area=float(data.get("area") or 0.0),
            rice_variety=data.get("rice_variety") or "",
            tentative_date=data.get("tentative_date") or "",
            owner_id=actor.id,
            created_at=now,
            updated_at=now,
        )
        self.db.save_field(field)
        return field

    def _owned(self, actor: User, field_id: str) -> Field:
        field = self.get(field_id)
        if field.owner_id != actor.id and not actor.is_admin:
            raise ForbiddenError("You do not own this field")
        return field

    def update(self, actor: User, field_id: str, updates: Dict[str, Any]) -> Field:
        field = self._owned(actor, field_id)
        for key in _UPDATABLE:
            if key in updates and updates[key] is not None:
                setattr(field, key, updates[key])
        if updates.get("coordinates") is not None:
            field.coordinates = Location(**updates["coordinates"])
        field.updated_at = utcnow()
        self.db.save_field(field)
        return field

    def delete(self, actor: User, field_id: str) -> None:
        self._owned(actor, field_id)
        self.db.delete_field(field_id)
