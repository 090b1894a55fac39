"""JWT token generation and validation utilities.

Secret and algorithm default to the global settings; callers holding their
own Settings pass both explicitly.
Tokens include standard claims (exp, iat, sub) plus a custom role claim.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError

from vendorhive.lib.settings import settings


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> str:
    """Create a JWT access token for a user.

    Args:
        user_id: Numeric user id (stored as a string in the 'sub' claim)
        role: User role (user, vendor)
        expires_delta: Optional custom expiration time
        secret: Signing key; defaults to settings.jwt_secret
        algorithm: Signing algorithm; defaults to settings.jwt_algorithm

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(42, "vendor")
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": str(user_id),  # Subject: user ID (RFC 7519 requires a string)
        "role": role,  # Custom claim for authorization
        "iat": now,  # Issued at
        "exp": expire,  # Expiration time
    }

    return jwt.encode(
        payload,
        secret or settings.jwt_secret,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def verify_token(token: str, secret: Optional[str] = None, algorithm: Optional[str] = None) -> dict:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string to verify
        secret: Signing key; defaults to settings.jwt_secret
        algorithm: Only tokens signed with this algorithm are accepted

    Returns:
        Decoded token payload with claims

    Raises:
        InvalidTokenError: If token is invalid, expired, or signature doesn't match
    """
    return jwt.decode(
        token,
        secret or settings.jwt_secret,
        algorithms=[algorithm or settings.jwt_algorithm],
    )


def get_user_from_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> tuple[int, str]:
    """Extract user_id and role from a token.

    Raises:
        InvalidTokenError: If token is invalid or its subject is not a numeric id
        KeyError: If required claims are missing

    Example:
        >>> user_id, role = get_user_from_token(token)
    """
    payload = verify_token(token, secret, algorithm)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Token subject is not a user id") from e
    return user_id, payload["role"]
