"""
GAuth Web - Password Hashing Utilities

Password hashing using bcrypt.
Work factor comes from settings (BCRYPT_ROUNDS, default 12).

Security:
- Never log or expose plaintext passwords
- bcrypt includes salt automatically
- Supports hash upgrades on login
"""

from typing import Optional

import bcrypt

from gauth_web.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plaintext password
        rounds: Override work factor (defaults to settings.BCRYPT_ROUNDS)

    Returns:
        bcrypt hash string (includes salt)

    Example:
        >>> hashed = hash_password("password")
        >>> hashed.startswith("$2b$")
        True
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Uses constant-time comparison. Malformed hashes never verify.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except (ValueError, TypeError):
        # Invalid hash format
        return False


def needs_rehash(hashed_password: str, target_work_factor: Optional[int] = None) -> bool:
    """
    Check if a password hash was produced with a weaker work factor.

    Example:
        # After raising BCRYPT_ROUNDS from 10 to 12:
        >>> needs_rehash(old_hash)  # Generated with factor 10
        True
    """
    target = target_work_factor or settings.BCRYPT_ROUNDS
    try:
        # bcrypt hash format: $2b$XX$...
        _, work_factor_str, _ = hashed_password.split("$")[1:4]
        return int(work_factor_str) < target
    except (ValueError, IndexError):
        # Not a valid bcrypt hash, definitely needs rehash
        return True
