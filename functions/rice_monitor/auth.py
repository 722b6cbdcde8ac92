"""
Bearer tokens and Google sign-in verification.

Access and refresh tokens are HS256 JWTs carrying the user id, email and
role. The signing secret lives in an `AuthConfig` built from settings at
startup and handed to `TokenService`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import requests

from rice_monitor.errors import InvalidTokenError
from shared.types import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret: str
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 7 * 24 * 3600
    algorithm: str = "HS256"


@dataclass
class TokenClaims:
    user_id: str
    email: str
    role: str
    type: str


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class TokenService:
    def __init__(self, config: AuthConfig):
        self.config = config

    def _encode(self, user: User, token_type: str, ttl_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user.id,
            "email": user.email,
            "role": user.role,
            "type": token_type,
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.algorithm)

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self._encode(
                user, ACCESS_TOKEN, self.config.access_token_ttl_seconds
            ),
            refresh_token=self._encode(
                user, REFRESH_TOKEN, self.config.refresh_token_ttl_seconds
            ),
            expires_in=self.config.access_token_ttl_seconds,
        )

    def decode(self, token: str, expected_type: str = ACCESS_TOKEN) -> TokenClaims:
        """
        Verify signature, expiry and token type.

        Raises:
            InvalidTokenError: if the token fails any check.
        """
        try:
            payload = jwt.decode(
                token, self.config.jwt_secret, algorithms=[self.config.algorithm]
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"Invalid {expected_type} token") from exc

        if payload.get("type") != expected_type or not payload.get("user_id"):
            raise InvalidTokenError(f"Invalid {expected_type} token")
        return TokenClaims(
            user_id=payload["user_id"],
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            type=payload["type"],
        )


@dataclass
class GoogleTokenInfo:
    email: str
    google_user_id: str = ""
    expires_in: int = 0


class GoogleTokenVerifier:
    """Checks Google OAuth access tokens against the token-info endpoint."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def verify(self, access_token: str) -> GoogleTokenInfo:
        response = self.session.get(
            GOOGLE_TOKENINFO_URL,
            params={"access_token": access_token},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.info("Google token rejected with status %s", response.status_code)
            raise InvalidTokenError("Invalid Google token")

        info = response.json()
        email = info.get("email")
        if not email:
            raise InvalidTokenError("Google token carries no email")
        return GoogleTokenInfo(
            email=email,
            google_user_id=info.get("sub", ""),
            expires_in=int(info.get("expires_in") or 0),
        )
