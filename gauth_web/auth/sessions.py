"""
GAuth Web - Session Management

Server-side sessions and the token issuing flow built on them.

Every login creates exactly one Session row with a fresh opaque token.
Access and refresh JWTs both embed that token, so the Session table is
the source of truth for revocation: a signed token whose session is
inactive or expired is rejected even if the JWT itself has not expired.

Security:
- Identical "Invalid credentials" failure for unknown user, wrong
  password and inactive account
- Logout immediately deactivates the session
- Refresh re-validates the live session and never creates a new one
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import or_
from sqlmodel import Session as DBSession, select

from gauth_web.auth.models import Session, User
from gauth_web.auth.password import hash_password, needs_rehash, verify_password
from gauth_web.auth.tokens import (
    InvalidTokenError,
    TokenType,
    create_access_token,
    create_refresh_token,
    get_token_expiry_seconds,
    refresh_token_lifetime,
    verify_token,
)


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class InvalidCredentialsError(Exception):
    """Login failed. The message never reveals which check failed."""

    def __init__(self):
        super().__init__(INVALID_CREDENTIALS)


class InvalidSessionError(Exception):
    """Token is well-formed but its session is missing, inactive or expired."""
    pass


@dataclass
class TokenBundle:
    """Result of a login or refresh."""
    user: User
    session: Session
    access_token: str
    refresh_token: str
    expires_in: int


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Equalizes response time between unknown users and wrong passwords
    return hash_password(uuid4().hex)


def find_login_user(db: DBSession, identifier: str) -> Optional[User]:
    """Look a non-deleted user up by username or email."""
    statement = select(User).where(
        or_(User.username == identifier, User.email == identifier),
        User.deleted_at == None,  # noqa: E711
    )
    return db.exec(statement).first()


def authenticate_user(db: DBSession, identifier: str, password: str) -> User:
    """
    Check a username/email + password pair.

    Returns:
        The matching active User

    Raises:
        InvalidCredentialsError: Unknown user, wrong password or inactive account
    """
    user = find_login_user(db, identifier)

    if user is None:
        verify_password(password, _dummy_hash())
        logger.info("Login failed: unknown identifier")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        logger.info("Login failed: bad password for user %s", user.id)
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.info("Login failed: inactive account %s", user.id)
        raise InvalidCredentialsError()

    # Upgrade hash when the configured work factor was raised
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        db.add(user)
        db.commit()

    return user


def create_session(
    db: DBSession,
    user_id: UUID,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Session:
    """
    Persist a new server-side session.

    The opaque token is a UUIDv4 string; the session lives as long as the
    refresh token issued with it.
    """
    session = Session(
        user_id=user_id,
        token=str(uuid4()),
        expires_at=datetime.utcnow() + refresh_token_lifetime(),
        ip_address=ip_address,
        user_agent=user_agent,
        is_active=True,
    )

    db.add(session)
    db.commit()
    db.refresh(session)

    return session


def open_session(
    db: DBSession,
    user: User,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> TokenBundle:
    """
    Issue a session and its token pair for an authenticated user.

    Side effects: inserts the Session row and updates user.last_login_at.
    """
    session = create_session(db, user.id, ip_address=ip_address, user_agent=user_agent)

    access_token = create_access_token(user.id, session.token)
    refresh_token = create_refresh_token(user.id, session.token)

    user.last_login_at = datetime.utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Session %s opened for user %s", session.id, user.id)

    return TokenBundle(
        user=user,
        session=session,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=get_token_expiry_seconds(),
    )


def validate_session(
    db: DBSession,
    session_token: str,
    user_id: UUID,
) -> Optional[Session]:
    """
    Load a live session by its opaque token and owner.

    Validation checks:
        1. Session exists for this token and user
        2. Session is active
        3. Session is not expired (expired sessions are deactivated)
        4. Owning user is active and not deleted

    Returns:
        Session if valid, None otherwise
    """
    statement = select(Session).where(
        Session.token == session_token,
        Session.user_id == user_id,
        Session.is_active == True,  # noqa: E712
    )
    session = db.exec(statement).first()

    if not session:
        return None

    if session.is_expired():
        session.is_active = False
        db.add(session)
        db.commit()
        return None

    user = session.user
    if user is None or not user.is_active or user.is_deleted:
        return None

    return session


def resolve_token(db: DBSession, token: str, expected_type: TokenType) -> Session:
    """
    Verify a JWT and return the live session it is bound to.

    Raises:
        InvalidTokenError: Signature, algorithm, expiry, claims or type check failed
        InvalidSessionError: Session missing, inactive or expired
    """
    payload = verify_token(token, expected_type=expected_type)

    try:
        user_id = UUID(payload.user_id)
    except ValueError:
        raise InvalidTokenError("Malformed user_id claim")

    session = validate_session(db, payload.session_token, user_id)
    if session is None:
        raise InvalidSessionError("Session expired or invalid")

    return session


def refresh_access_token(db: DBSession, refresh_token: str) -> TokenBundle:
    """
    Exchange a refresh token for a new access token on the same session.

    The refresh token is returned unchanged (no rotation) and no new
    Session row is created.
    """
    session = resolve_token(db, refresh_token, TokenType.REFRESH)
    user = session.user

    access_token = create_access_token(user.id, session.token)

    return TokenBundle(
        user=user,
        session=session,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=get_token_expiry_seconds(),
    )


def invalidate_session(db: DBSession, session: Session) -> None:
    """Deactivate a session (logout). Effective immediately."""
    session.is_active = False
    db.add(session)
    db.commit()


def invalidate_all_user_sessions(
    db: DBSession,
    user_id: UUID,
    keep_session_id: Optional[UUID] = None,
) -> int:
    """
    Deactivate every active session of a user.

    Args:
        keep_session_id: Session to leave untouched (e.g. the caller's own)

    Returns:
        Number of sessions invalidated
    """
    statement = select(Session).where(
        Session.user_id == user_id,
        Session.is_active == True,  # noqa: E712
    )

    count = 0
    for session in db.exec(statement).all():
        if keep_session_id is not None and session.id == keep_session_id:
            continue
        session.is_active = False
        db.add(session)
        count += 1

    db.commit()

    return count


def get_active_sessions(db: DBSession, user_id: UUID) -> List[Session]:
    """All active, unexpired sessions for a user, newest first."""
    statement = (
        select(Session)
        .where(
            Session.user_id == user_id,
            Session.is_active == True,  # noqa: E712
            Session.expires_at > datetime.utcnow(),
        )
        .order_by(Session.created_at.desc())
    )
    return list(db.exec(statement).all())


def cleanup_expired_sessions(db: DBSession) -> int:
    """
    Mark all expired sessions as inactive.

    Should be run periodically (e.g., daily cron job).

    Returns:
        Number of sessions cleaned up
    """
    statement = select(Session).where(
        Session.is_active == True,  # noqa: E712
        Session.expires_at < datetime.utcnow(),
    )

    count = 0
    for session in db.exec(statement).all():
        session.is_active = False
        db.add(session)
        count += 1

    db.commit()

    return count
