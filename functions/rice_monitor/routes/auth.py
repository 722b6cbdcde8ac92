from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from rice_monitor.auth import REFRESH_TOKEN, GoogleTokenVerifier, TokenService
from rice_monitor.dependencies import (
    get_current_user,
    get_google_verifier,
    get_token_service,
    get_user_service,
)
from rice_monitor.schemas import (
    AuthResponse,
    GoogleTokenRequest,
    MessageResponse,
    RefreshTokenRequest,
    UserResponse,
)
from rice_monitor.users import UserService
from shared.types import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User, tokens: TokenService) -> AuthResponse:
    pair = tokens.issue_pair(user)
    return AuthResponse(
        user=UserResponse.from_user(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/google", response_model=AuthResponse)
def google_login(
    payload: GoogleTokenRequest,
    verifier: GoogleTokenVerifier = Depends(get_google_verifier),
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Exchange a Google OAuth access token for API tokens, creating the user on
    first sign-in.
    """
    info = verifier.verify(payload.token)
    user = users.sign_in(info)
    logger.info("User %s signed in", user.id)
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=AuthResponse)
def refresh_token(
    payload: RefreshTokenRequest,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
):
    claims = tokens.decode(payload.refresh_token, expected_type=REFRESH_TOKEN)
    user = users.require(claims.user_id)
    return _auth_response(user, tokens)


@router.post("/logout", response_model=MessageResponse)
def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards them.
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.from_user(user)
