"""
Service-level errors. Routes let these propagate; the app translates them
into HTTP responses.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400
    code = "invalid_request"


class UnauthorizedError(ServiceError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class InvalidTokenError(UnauthorizedError):
    code = "invalid_token"


class InvalidFileTypeError(ValidationError):
    code = "invalid_file_type"


class UploadFailedError(ServiceError):
    code = "upload_failed"


class DeleteFailedError(ServiceError):
    code = "delete_failed"


def describe_validation_errors(errors) -> str:
    """Join pydantic error entries into "loc: msg; loc: msg"."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return details or "Invalid request"
