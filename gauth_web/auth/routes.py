"""
GAuth Web - Authentication Routes

API endpoints for authentication:
- POST /auth/login            - Verify credentials, open session, issue tokens
- POST /auth/refresh          - New access token for a live refresh token
- POST /auth/logout           - Deactivate current (or every) session
- GET  /auth/me               - Current user profile
- POST /auth/change-password  - Change own password
- GET  /auth/sessions         - List own active sessions

Every request is recorded by the audit middleware.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session as DBSession

from gauth_web.auth import sessions as session_service
from gauth_web.auth.dependencies import AuthenticatedUser, get_current_user, get_db
from gauth_web.auth.password import hash_password, verify_password
from gauth_web.auth.schemas import (
    ActiveSessionsResponse,
    ChangePasswordRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    LogoutResponse,
    MessageResponse,
    RefreshRequest,
    SessionInfo,
    UserResponse,
)
from gauth_web.auth.tokens import InvalidTokenError
from gauth_web.gateway.client_info import get_client_ip, get_user_agent


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_response(bundle: session_service.TokenBundle) -> LoginResponse:
    return LoginResponse(
        user=UserResponse.from_user(bundle.user),
        access_token=bundle.access_token,
        refresh_token=bundle.refresh_token,
        expires_in=bundle.expires_in,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Authenticate user and create session",
)
def login(
    request: Request,
    credentials: LoginRequest,
    db: DBSession = Depends(get_db),
):
    """
    Authenticate with username (or email) and password.

    On success a new Session row is created and an access/refresh token
    pair bound to it is returned.

    Raises:
        401: Invalid credentials (same message for every failure cause)
    """
    try:
        user = session_service.authenticate_user(db, credentials.username, credentials.password)
    except session_service.InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    bundle = session_service.open_session(
        db,
        user,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    request.state.user_id = user.id

    return _token_response(bundle)


@router.post(
    "/refresh",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Refresh access token",
)
def refresh(
    request: Request,
    body: RefreshRequest,
    db: DBSession = Depends(get_db),
):
    """
    Mint a new access token for the session behind a refresh token.

    The refresh token itself is echoed back unchanged.
    """
    try:
        bundle = session_service.refresh_access_token(db, body.refresh_token)
    except (InvalidTokenError, session_service.InvalidSessionError) as e:
        logger.info("Refresh rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    request.state.user_id = bundle.user.id
    return _token_response(bundle)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Invalidate current session",
)
def logout(
    user: AuthenticatedUser = Depends(get_current_user),
    body: Optional[LogoutRequest] = None,
    db: DBSession = Depends(get_db),
):
    """
    Invalidate the current session (or all sessions).

    Every access and refresh token bound to an invalidated session is
    rejected from then on, regardless of its own expiry.
    """
    if body and body.all_sessions:
        count = session_service.invalidate_all_user_sessions(db, user.user_id)
        logger.info("User %s logged out of %d sessions", user.user_id, count)
        return LogoutResponse(
            message="All sessions invalidated",
            sessions_invalidated=count,
        )

    session_service.invalidate_session(db, user.session)
    logger.info("Session %s closed", user.session_id)

    return LogoutResponse(message="Logged out successfully", sessions_invalidated=1)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user information",
)
def get_me(user: AuthenticatedUser = Depends(get_current_user)):
    """Current authenticated user's profile, without credentials."""
    return UserResponse.from_user(user.user)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Change current user's password",
)
def change_password(
    body: ChangePasswordRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
):
    """
    Change own password after re-verifying the current one.

    Other sessions of the user are invalidated; the calling session stays live.
    """
    account = user.user

    if not verify_password(body.current_password, account.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect",
        )

    account.password_hash = hash_password(body.new_password)
    db.add(account)
    db.commit()

    revoked = session_service.invalidate_all_user_sessions(
        db, account.id, keep_session_id=user.session_id
    )
    logger.info("Password changed for user %s (%d other sessions revoked)", account.id, revoked)

    return MessageResponse(message="Password changed successfully")


@router.get(
    "/sessions",
    response_model=ActiveSessionsResponse,
    summary="List active sessions",
)
def list_sessions(
    user: AuthenticatedUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
):
    """List all active sessions for the current user."""
    active = session_service.get_active_sessions(db, user.user_id)

    return ActiveSessionsResponse(
        sessions=[SessionInfo.from_session(s, user.session_id) for s in active],
        total=len(active),
    )
