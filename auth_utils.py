"""
Authentication utilities: Password hashing and JWT token management
"""

import re
import jwt
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from typing import Optional
from config.settings import settings

# Password hashing context
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto"
)

# JWT configuration
ALGORITHM = "HS256"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


class AuthTokenError(Exception):
    """Raised when a token is malformed, badly signed, or expired."""


def hash_password(password: str) -> str:
    """Hash a password using argon2"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(password, password_hash)


def parse_duration(value) -> timedelta:
    """
    Parse a token lifetime such as "7d", "12h", "30m", "45s" or "2w".
    A bare integer (or digit string) is taken as seconds.

    Raises:
        ValueError: If the value is not a recognised duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def _get_secret() -> str:
    if not settings.jwt_secret:
        raise ValueError("JWT_SECRET is not set. Cannot sign or verify JWT tokens.")
    return settings.jwt_secret


def create_jwt(user_id: str, email: str, expires_in=None) -> str:
    """Create a signed JWT carrying sub, email, iat and exp"""
    secret = _get_secret()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + parse_duration(expires_in if expires_in is not None else settings.jwt_expires_in),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Verify a JWT and return its claims.

    Raises:
        AuthTokenError: If the signature is invalid, the token is malformed
            or expired, or required claims are missing
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_secret()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthTokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthTokenError(f"Invalid token: {e}") from e


def create_expired_jwt(user_id: str, email: str = "", expired_seconds_ago: int = 1) -> str:
    """
    Create an expired JWT token for testing purposes.

    Args:
        user_id: User ID to include in token
        email: Email claim to include in token
        expired_seconds_ago: How many seconds ago the token should have expired (default: 1)

    Returns:
        Expired JWT token string

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_secret()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now - timedelta(seconds=expired_seconds_ago + 60),
        "exp": now - timedelta(seconds=expired_seconds_ago),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def validate_email(email: Optional[str]) -> bool:
    """Validate email format"""
    if not email:
        return False
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None
