"""
Object storage for submission media: S3-compatible buckets (Google Cloud
Storage interoperability, COS, MinIO) and an in-memory double for tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store a publicly readable object and return its public URL."""
        ...

    def delete(self, path: str) -> None:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    host: str = "storage.example.test"
    bucket: str = "media"
    stored_objects: dict = field(default_factory=dict)

    def public_url(self, path: str) -> str:
        return f"https://{self.host}/{self.bucket}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str | None = None) -> str:
        self.stored_objects[path] = (data, content_type)
        return self.public_url(path)

    def delete(self, path: str) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        del self.stored_objects[path]


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. Objects are made public-read so the
    returned URLs can be embedded in spreadsheets and the web client.
    """

    bucket: str
    endpoint: str
    region: str
    access_key_id: str
    secret_access_key: str
    public_host: str = "storage.googleapis.com"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def public_url(self, path: str) -> str:
        return f"https://{self.public_host}/{self.bucket}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str | None = None) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type or "application/octet-stream",
        )
        try:
            self._client.put_object_acl(Bucket=self.bucket, Key=path, ACL="public-read")
        except ClientError as exc:
            # Buckets with uniform access control reject per-object ACLs.
            logger.warning("Failed to make %s public: %s", path, exc)
        return self.public_url(path)

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)
