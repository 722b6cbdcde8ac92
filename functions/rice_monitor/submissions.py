"""
Submission CRUD with ownership checks.

Mutations hand a sync task to the queue after the record store write; the
request never waits on the spreadsheet and never sees its failures.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from rice_monitor.db import DbClient
from rice_monitor.errors import ForbiddenError, NotFoundError, ValidationError
from rice_monitor.queue import APPEND, UPDATE, SyncQueue, SyncTask
from rice_monitor.row_codec import field_name_for, submission_to_row
from rice_monitor.schemas import CreateSubmissionRequest, UpdateSubmissionRequest
from shared.types import (
    OTHERS_FIELD_ID,
    Field,
    Location,
    PlantConditions,
    Submission,
    SubmissionStatus,
    TraitMeasurements,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class SubmissionService:
    def __init__(self, db: DbClient, queue: SyncQueue):
        self.db = db
        self.queue = queue

    def _dispatch(self, action: str, submission_id: str) -> None:
        try:
            self.queue.enqueue(SyncTask(action=action, submission_id=submission_id))
        except Exception:
            logger.exception("[%s] Failed to enqueue sync %s", submission_id, action)

    def _load(self, actor: User, submission_id: str) -> Submission:
        submission = self.db.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        if submission.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("You do not have access to this submission")
        return submission

    def check_access(self, actor: User, submission_id: str) -> None:
        self._load(actor, submission_id)

    def resolve_field(self, submission: Submission) -> Optional[Field]:
        """The linked field, or an "others" pseudo-field carrying the free-text name."""
        if submission.is_linked_to_field:
            return self.db.get_field(submission.field_id)
        if submission.other_field_name:
            return Field(id=OTHERS_FIELD_ID, name=submission.other_field_name)
        return None

    def create(self, actor: User, request: CreateSubmissionRequest) -> Submission:
        if not request.growth_stage.strip():
            raise ValidationError("growth_stage is required")
        if not request.observer_name.strip():
            raise ValidationError("observer_name is required")

        now = utcnow()
        submission = Submission(
            id=str(uuid.uuid4()),
            user_id=actor.id,
            field_id=request.field_id,
            other_field_name=request.other_field_name,
            date=request.date,
            growth_stage=request.growth_stage,
            observer_name=request.observer_name,
            plant_conditions=PlantConditions(**request.plant_conditions.model_dump()),
            trait_measurements=TraitMeasurements(**request.trait_measurements.model_dump()),
            coordinates=Location(**request.coordinates.model_dump()),
            notes=request.notes,
            images=list(request.images),
            videos=list(request.videos),
            audio=list(request.audio),
            status=SubmissionStatus.SUBMITTED.value,
            created_at=now,
            updated_at=now,
        )
        self.db.save_submission(submission)
        logger.info("[%s] Submission created by %s", submission.id, actor.id)
        self._dispatch(APPEND, submission.id)
        return submission

    def get(self, actor: User, submission_id: str) -> tuple[Submission, Optional[Field]]:
        submission = self._load(actor, submission_id)
        return submission, self.resolve_field(submission)

    def list_submissions(
        self,
        actor: User,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[str] = None,
        field_id: Optional[str] = None,
    ) -> list[tuple[Submission, Optional[Field]]]:
        page = max(1, page)
        limit = max(1, limit)
        submissions = self.db.list_submissions(
            user_id=None if actor.is_admin else actor.id,
            status=status or None,
            field_id=field_id or None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return [(submission, self.resolve_field(submission)) for submission in submissions]

    def update(
        self, actor: User, submission_id: str, request: UpdateSubmissionRequest
    ) -> Submission:
        self._load(actor, submission_id)

        changes = {
            key: value
            for key, value in request.model_dump(exclude_unset=True).items()
            if value is not None
        }
        updates = {}
        if "other_field_name" in changes:
            updates["other_field_name"] = changes.pop("other_field_name")
            updates["field_id"] = OTHERS_FIELD_ID
            changes.pop("field_id", None)
        if "plant_conditions" in changes:
            updates["plant_conditions"] = PlantConditions(
                **changes.pop("plant_conditions")
            ).to_document()
        for key in ("trait_measurements", "coordinates"):
            if key in changes:
                updates[key] = changes.pop(key)
        for key in ("growth_stage", "observer_name"):
            if key in changes and not changes[key].strip():
                raise ValidationError(f"{key} cannot be empty")
        updates.update(changes)
        updates["updated_at"] = utcnow()

        submission = self.db.update_submission(submission_id, updates)
        if submission is None:
            raise NotFoundError("Submission not found")
        logger.info("[%s] Submission updated by %s", submission_id, actor.id)
        self._dispatch(UPDATE, submission_id)
        return submission

    def delete(self, actor: User, submission_id: str) -> None:
        """Deletes the record only; spreadsheet rows and media objects are left in place."""
        self._load(actor, submission_id)
        if not self.db.delete_submission(submission_id):
            raise NotFoundError("Submission not found")
        logger.info("[%s] Submission deleted by %s", submission_id, actor.id)

    def export_rows(self, actor: User) -> list[list[str]]:
        """
        Rows for every submission the actor can see, in store order. Built in
        full before the response starts so store errors surface as a 500.
        """
        rows = []
        field_names: dict[str, str] = {}
        for submission in self.db.iter_submissions(
            user_id=None if actor.is_admin else actor.id
        ):
            if submission.is_linked_to_field and submission.field_id not in field_names:
                field_names[submission.field_id] = field_name_for(
                    submission, self.db.get_field(submission.field_id)
                )
            name = (
                field_names[submission.field_id]
                if submission.is_linked_to_field
                else field_name_for(submission, None)
            )
            rows.append(submission_to_row(submission, name))
        return rows
