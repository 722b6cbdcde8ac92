"""
Dependency wiring for the FastAPI app and the standalone worker.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rice_monitor.analytics import AnalyticsService
from rice_monitor.auth import AuthConfig, GoogleTokenVerifier, TokenService
from rice_monitor.config import get_settings
from rice_monitor.db import DbClient, FirestoreDbClient, InMemoryDbClient, SqlDbClient
from rice_monitor.errors import UnauthorizedError
from rice_monitor.fields import FieldService
from rice_monitor.media import MediaService
from rice_monitor.queue import InMemorySyncQueue, RedisSyncQueue, SyncQueue
from rice_monitor.sheets import GoogleSheetsClient, InMemorySheetsClient, SheetsClient
from rice_monitor.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from rice_monitor.submissions import SubmissionService
from rice_monitor.sync import SheetSyncEngine
from rice_monitor.users import UserService
from shared.types import User

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_sheets_client: SheetsClient | None = None
_sync_queue: SyncQueue | None = None
_token_service: TokenService | None = None
_google_verifier: GoogleTokenVerifier | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton record store client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    elif settings.database_url:
        _db_client = SqlDbClient(settings.database_url)
    elif settings.google_cloud_project or settings.firebase_credentials_path:
        _db_client = FirestoreDbClient(
            project_id=settings.google_cloud_project,
            credentials_path=settings.firebase_credentials_path,
        )
    else:
        _db_client = InMemoryDbClient()
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            endpoint=settings.storage_endpoint,
            region=settings.storage_region,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_host=settings.storage_public_host,
        )
    return _storage_client


def get_sheets_client() -> SheetsClient:
    global _sheets_client
    if _sheets_client:
        return _sheets_client

    settings = get_settings()
    if settings.use_in_memory_backends or not (
        settings.sheets_credentials_path or settings.google_cloud_project
    ):
        _sheets_client = InMemorySheetsClient()
    else:
        _sheets_client = GoogleSheetsClient(settings.sheets_credentials_path)
    return _sheets_client


def get_sync_queue() -> SyncQueue:
    """
    Return a singleton queue for dispatching spreadsheet sync tasks.
    """
    global _sync_queue
    if _sync_queue is not None:
        return _sync_queue

    settings = get_settings()
    if settings.redis_url:
        _sync_queue = RedisSyncQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
            max_size=settings.sync_queue_max_size,
        )
    else:
        _sync_queue = InMemorySyncQueue(max_size=settings.sync_queue_max_size)
    return _sync_queue


def get_sync_engine() -> SheetSyncEngine:
    return SheetSyncEngine(get_db_client(), get_sheets_client())


def get_auth_config() -> AuthConfig:
    settings = get_settings()
    return AuthConfig(
        jwt_secret=settings.jwt_secret,
        access_token_ttl_seconds=settings.access_token_ttl_seconds,
        refresh_token_ttl_seconds=settings.refresh_token_ttl_seconds,
    )


def get_token_service() -> TokenService:
    global _token_service
    if _token_service:
        return _token_service
    _token_service = TokenService(get_auth_config())
    return _token_service


def get_google_verifier() -> GoogleTokenVerifier:
    global _google_verifier
    if _google_verifier:
        return _google_verifier
    _google_verifier = GoogleTokenVerifier()
    return _google_verifier


_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: DbClient = Depends(get_db_client),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """
    Resolve the bearer token to a stored user. The user is re-read on every
    request so role changes and deletions take effect immediately.
    """
    if credentials is None:
        raise UnauthorizedError("Authorization header required")
    claims = tokens.decode(credentials.credentials)
    user = db.get_user(claims.user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


def get_submission_service(
    db: DbClient = Depends(get_db_client),
    queue: SyncQueue = Depends(get_sync_queue),
) -> SubmissionService:
    return SubmissionService(db, queue)


def get_media_service(
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
) -> MediaService:
    return MediaService(db, storage)


def get_field_service(db: DbClient = Depends(get_db_client)) -> FieldService:
    return FieldService(db)


def get_user_service(db: DbClient = Depends(get_db_client)) -> UserService:
    return UserService(db)


def get_analytics_service(db: DbClient = Depends(get_db_client)) -> AnalyticsService:
    return AnalyticsService(db)
