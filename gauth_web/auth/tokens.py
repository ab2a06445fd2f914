"""
GAuth Web - JWT Token Management

Creates and validates the two signed claim sets issued at login:
- access:  short-lived, presented on every authenticated request
- refresh: long-lived, exchanged for a new access token

Both carry:
- user_id        (subject)
- session_token  (opaque reference to the server-side Session row)
- type           ("access" | "refresh")
- exp / iat

Security:
- Only the configured HMAC algorithm is accepted on decode
- The signature alone never proves the session is still live; callers
  must cross-check session_token against the Session table
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from gauth_web.config import settings


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenPayload(BaseModel):
    """
    Decoded JWT claim set.

    Attributes:
        user_id: Owning user's id
        session_token: Opaque Session.token this JWT is bound to
        type: access or refresh
        exp: Expiration time
        iat: Issued-at time
    """
    user_id: str = Field(..., min_length=1, description="User ID")
    session_token: str = Field(..., min_length=1, description="Session token")
    type: TokenType
    exp: datetime
    iat: datetime


class InvalidTokenError(Exception):
    """Raised when JWT validation fails."""
    pass


def access_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def refresh_token_lifetime() -> timedelta:
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def get_token_expiry_seconds() -> int:
    """Access token lifetime in seconds, reported as expires_in."""
    return int(access_token_lifetime().total_seconds())


def _encode(
    user_id: UUID,
    session_token: str,
    token_type: TokenType,
    lifetime: timedelta,
) -> str:
    now = datetime.utcnow()
    payload = {
        "user_id": str(user_id),
        "session_token": session_token,
        "type": token_type.value,
        "exp": now + lifetime,
        "iat": now,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(
    user_id: UUID,
    session_token: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token bound to a session.

    Example:
        >>> token = create_access_token(user.id, session.token)
    """
    return _encode(user_id, session_token, TokenType.ACCESS, expires_delta or access_token_lifetime())


def create_refresh_token(
    user_id: UUID,
    session_token: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed refresh token bound to a session."""
    return _encode(user_id, session_token, TokenType.REFRESH, expires_delta or refresh_token_lifetime())


def verify_token(token: str, expected_type: Optional[TokenType] = None) -> TokenPayload:
    """
    Verify and decode a JWT.

    Args:
        token: Encoded JWT string
        expected_type: Reject tokens whose type claim differs

    Returns:
        Decoded TokenPayload

    Raises:
        InvalidTokenError: Bad signature, disallowed algorithm, expired,
            missing claims or wrong token type
    """
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        payload = TokenPayload(**claims)
    except JWTError as e:
        raise InvalidTokenError(f"Token validation failed: {e}")
    except ValidationError as e:
        raise InvalidTokenError(f"Token claims invalid: {e.error_count()} error(s)")

    if expected_type is not None and payload.type != expected_type:
        raise InvalidTokenError(f"Expected {expected_type.value} token")

    return payload
