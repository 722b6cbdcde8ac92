"""
Record store abstraction: Firestore in production, SQLAlchemy as a
self-hosted alternative, and an in-memory implementation for tests.

Every client exposes the same four collections (users, submissions, fields,
sheets) and stores submissions in the document layout the web client and
spreadsheet mirror already rely on.
"""

from __future__ import annotations

import copy
import json
import threading
import time
from datetime import date, datetime
from typing import Callable, Dict, Iterator, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.firebase_constants import (
    FIELDS_COLLECTION,
    SHEETS_COLLECTION,
    SUBMISSIONS_COLLECTION,
    USERS_COLLECTION,
)
from shared.types import (
    Field,
    MediaKind,
    SheetRegistration,
    Submission,
    User,
    utcnow,
)

# Media kind -> submission list attribute.
MEDIA_LIST_FIELDS = {
    MediaKind.IMAGE: "images",
    MediaKind.VIDEO: "videos",
    MediaKind.AUDIO: "audio",
}


class DbClient(Protocol):
    """Interface for record store access."""

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        ...

    def save_submission(self, submission: Submission) -> None:
        ...

    def update_submission(
        self, submission_id: str, updates: dict
    ) -> Optional[Submission]:
        ...

    def delete_submission(self, submission_id: str) -> bool:
        ...

    def list_submissions(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        field_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Submission]:
        ...

    def iter_submissions(self, *, user_id: Optional[str] = None) -> Iterator[Submission]:
        ...

    def append_submission_media(
        self, submission_id: str, kind: MediaKind, url: str
    ) -> Optional[Submission]:
        ...

    def get_field(self, field_id: str) -> Optional[Field]:
        ...

    def list_fields(self) -> list[Field]:
        ...

    def save_field(self, field: Field) -> None:
        ...

    def delete_field(self, field_id: str) -> bool:
        ...

    def get_user(self, user_id: str) -> Optional[User]:
        ...

    def find_user_by_email(self, email: str) -> Optional[User]:
        ...

    def save_user(self, user: User) -> None:
        ...

    def delete_user(self, user_id: str) -> bool:
        ...

    def list_sheets(self) -> list[SheetRegistration]:
        ...

    def add_sheet(self, sheet: SheetRegistration) -> None:
        ...


def _matches(
    submission: Submission,
    user_id: Optional[str],
    status: Optional[str],
    field_id: Optional[str],
) -> bool:
    if user_id is not None and submission.user_id != user_id:
        return False
    if status and submission.status != status:
        return False
    if field_id and submission.field_id != field_id:
        return False
    return True


def _append_media(doc: dict, kind: MediaKind, url: str) -> dict:
    submission = Submission.from_document(doc)
    getattr(submission, MEDIA_LIST_FIELDS[MediaKind(kind)]).append(url)
    submission.updated_at = utcnow()
    return submission.to_document()


class DocumentDbClient:
    """
    Domain operations on top of five document primitives. Subclasses provide
    storage; `_modify` must run its callback atomically for a single document.
    """

    def _get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def _put(self, collection: str, doc_id: str, data: dict) -> None:
        raise NotImplementedError

    def _delete(self, collection: str, doc_id: str) -> bool:
        raise NotImplementedError

    def _all(self, collection: str) -> list[dict]:
        raise NotImplementedError

    def _modify(
        self, collection: str, doc_id: str, fn: Callable[[dict], dict]
    ) -> Optional[dict]:
        raise NotImplementedError

    # Submissions
    def get_submission(self, submission_id: str) -> Optional[Submission]:
        doc = self._get(SUBMISSIONS_COLLECTION, submission_id)
        return Submission.from_document(doc) if doc else None

    def save_submission(self, submission: Submission) -> None:
        self._put(SUBMISSIONS_COLLECTION, submission.id, submission.to_document())

    def update_submission(
        self, submission_id: str, updates: dict
    ) -> Optional[Submission]:
        def apply(doc: dict) -> dict:
            doc.update(updates)
            return doc

        doc = self._modify(SUBMISSIONS_COLLECTION, submission_id, apply)
        return Submission.from_document(doc) if doc else None

    def delete_submission(self, submission_id: str) -> bool:
        return self._delete(SUBMISSIONS_COLLECTION, submission_id)

    def list_submissions(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        field_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Submission]:
        items = [
            submission
            for submission in self.iter_submissions(user_id=user_id)
            if _matches(submission, None, status, field_id)
        ]
        items.sort(key=lambda s: s.created_at, reverse=True)
        end = offset + limit if limit is not None else None
        return items[offset:end]

    def iter_submissions(self, *, user_id: Optional[str] = None) -> Iterator[Submission]:
        for doc in self._all(SUBMISSIONS_COLLECTION):
            submission = Submission.from_document(doc)
            if _matches(submission, user_id, None, None):
                yield submission

    def append_submission_media(
        self, submission_id: str, kind: MediaKind, url: str
    ) -> Optional[Submission]:
        doc = self._modify(
            SUBMISSIONS_COLLECTION,
            submission_id,
            lambda current: _append_media(current, kind, url),
        )
        return Submission.from_document(doc) if doc else None

    # Fields
    def get_field(self, field_id: str) -> Optional[Field]:
        doc = self._get(FIELDS_COLLECTION, field_id)
        return Field.from_document(doc) if doc else None

    def list_fields(self) -> list[Field]:
        fields = [Field.from_document(doc) for doc in self._all(FIELDS_COLLECTION)]
        fields.sort(key=lambda f: f.created_at, reverse=True)
        return fields

    def save_field(self, field: Field) -> None:
        self._put(FIELDS_COLLECTION, field.id, field.to_document())

    def delete_field(self, field_id: str) -> bool:
        return self._delete(FIELDS_COLLECTION, field_id)

    # Users
    def get_user(self, user_id: str) -> Optional[User]:
        doc = self._get(USERS_COLLECTION, user_id)
        return User.from_document(doc) if doc else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        for doc in self._all(USERS_COLLECTION):
            if doc.get("email") == email:
                return User.from_document(doc)
        return None

    def save_user(self, user: User) -> None:
        self._put(USERS_COLLECTION, user.id, user.to_document())

    def delete_user(self, user_id: str) -> bool:
        return self._delete(USERS_COLLECTION, user_id)

    # Sheet registrations
    def list_sheets(self) -> list[SheetRegistration]:
        return [SheetRegistration.from_document(doc) for doc in self._all(SHEETS_COLLECTION)]

    def add_sheet(self, sheet: SheetRegistration) -> None:
        self._put(SHEETS_COLLECTION, sheet.document_id, sheet.to_document())


class InMemoryDbClient(DocumentDbClient):
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()

    def _collection(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def _get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def _put(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)

    def _delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def _all(self, collection: str) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collection(collection).values()]

    def _modify(
        self, collection: str, doc_id: str, fn: Callable[[dict], dict]
    ) -> Optional[dict]:
        with self._lock:
            current = self._collection(collection).get(doc_id)
            if current is None:
                return None
            updated = fn(copy.deepcopy(current))
            self._collection(collection)[doc_id] = updated
            return copy.deepcopy(updated)


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SqlDbClient(DocumentDbClient):
    """
    SQLAlchemy-backed document table. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            json_serializer=lambda obj: json.dumps(obj, default=_json_default),
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            return dict(row.data) if row else None

    def _put(self, collection: str, doc_id: str, data: dict) -> None:
        now = time.time()
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if row:
                row.data = data
                row.updated_at = now
            else:
                session.add(
                    DocumentRow(
                        collection=collection,
                        doc_id=doc_id,
                        data=data,
                        created_at=now,
                        updated_at=now,
                    )
                )
            session.commit()

    def _delete(self, collection: str, doc_id: str) -> bool:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def _all(self, collection: str) -> list[dict]:
        with self.Session() as session:
            rows = (
                session.execute(
                    select(DocumentRow)
                    .where(DocumentRow.collection == collection)
                    .order_by(DocumentRow.created_at.asc())
                )
                .scalars()
                .all()
            )
            return [dict(row.data) for row in rows]

    def _modify(
        self, collection: str, doc_id: str, fn: Callable[[dict], dict]
    ) -> Optional[dict]:
        with self.Session() as session:
            stmt = (
                select(DocumentRow)
                .where(
                    DocumentRow.collection == collection,
                    DocumentRow.doc_id == doc_id,
                )
                .with_for_update()
            )
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            # Round-trip through JSON so callbacks see the same shapes as reads.
            updated = fn(json.loads(json.dumps(row.data, default=_json_default)))
            row.data = updated
            row.updated_at = time.time()
            session.commit()
            return json.loads(json.dumps(updated, default=_json_default))


class FirestoreDbClient:
    """Firestore-backed record store."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[str] = None,
    ):
        try:
            app = firebase_admin.get_app()
        except ValueError:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            options = {"projectId": project_id} if project_id else None
            app = firebase_admin.initialize_app(cred, options)
        self.client = firestore.client(app)

    def _submissions(self):
        return self.client.collection(SUBMISSIONS_COLLECTION)

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        snapshot = self._submissions().document(submission_id).get()
        if not snapshot.exists:
            return None
        return Submission.from_document(snapshot.to_dict())

    def save_submission(self, submission: Submission) -> None:
        self._submissions().document(submission.id).set(submission.to_document())

    def update_submission(
        self, submission_id: str, updates: dict
    ) -> Optional[Submission]:
        try:
            self._submissions().document(submission_id).update(updates)
        except exceptions.NotFound:
            return None
        return self.get_submission(submission_id)

    def delete_submission(self, submission_id: str) -> bool:
        doc_ref = self._submissions().document(submission_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def _submission_query(self, user_id: Optional[str]):
        query = self._submissions()
        if user_id is not None:
            query = query.where(filter=FieldFilter("user_id", "==", user_id))
        return query

    def list_submissions(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        field_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Submission]:
        query = self._submission_query(user_id)
        if status:
            query = query.where(filter=FieldFilter("status", "==", status))
        if field_id:
            query = query.where(filter=FieldFilter("field_id", "==", field_id))
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [Submission.from_document(doc.to_dict()) for doc in query.stream()]

    def iter_submissions(self, *, user_id: Optional[str] = None) -> Iterator[Submission]:
        for doc in self._submission_query(user_id).stream():
            yield Submission.from_document(doc.to_dict())

    def append_submission_media(
        self, submission_id: str, kind: MediaKind, url: str
    ) -> Optional[Submission]:
        transaction = self.client.transaction()
        doc_ref = self._submissions().document(submission_id)

        @firestore.transactional
        def _append_transaction(transaction, doc_ref):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return None
            doc = _append_media(snapshot.to_dict(), kind, url)
            transaction.set(doc_ref, doc)
            return doc

        doc = _append_transaction(transaction, doc_ref)
        return Submission.from_document(doc) if doc else None

    def get_field(self, field_id: str) -> Optional[Field]:
        snapshot = self.client.collection(FIELDS_COLLECTION).document(field_id).get()
        return Field.from_document(snapshot.to_dict()) if snapshot.exists else None

    def list_fields(self) -> list[Field]:
        query = self.client.collection(FIELDS_COLLECTION).order_by(
            "created_at", direction=firestore.Query.DESCENDING
        )
        return [Field.from_document(doc.to_dict()) for doc in query.stream()]

    def save_field(self, field: Field) -> None:
        self.client.collection(FIELDS_COLLECTION).document(field.id).set(
            field.to_document()
        )

    def delete_field(self, field_id: str) -> bool:
        doc_ref = self.client.collection(FIELDS_COLLECTION).document(field_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def get_user(self, user_id: str) -> Optional[User]:
        snapshot = self.client.collection(USERS_COLLECTION).document(user_id).get()
        return User.from_document(snapshot.to_dict()) if snapshot.exists else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        query = (
            self.client.collection(USERS_COLLECTION)
            .where(filter=FieldFilter("email", "==", email))
            .limit(1)
        )
        for doc in query.stream():
            return User.from_document(doc.to_dict())
        return None

    def save_user(self, user: User) -> None:
        self.client.collection(USERS_COLLECTION).document(user.id).set(
            user.to_document()
        )

    def delete_user(self, user_id: str) -> bool:
        doc_ref = self.client.collection(USERS_COLLECTION).document(user_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def list_sheets(self) -> list[SheetRegistration]:
        return [
            SheetRegistration.from_document(doc.to_dict())
            for doc in self.client.collection(SHEETS_COLLECTION).stream()
        ]

    def add_sheet(self, sheet: SheetRegistration) -> None:
        self.client.collection(SHEETS_COLLECTION).document(sheet.document_id).set(
            sheet.to_document()
        )
