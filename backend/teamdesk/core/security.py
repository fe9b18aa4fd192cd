"""Security utilities: invitation tokens, password hashing, JWT validation."""

import re
import secrets
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from jwt import exceptions as jwt_exceptions

from teamdesk.core.config import get_settings

settings = get_settings()

# 32 random bytes -> 256 bits of entropy, base64url encoded (43 chars)
INVITATION_TOKEN_BYTES = 32

_COMMON_PASSWORDS = frozenset(
    {
        "password",
        "password1",
        "password123",
        "password123!",
        "qwerty123!",
        "welcome1!",
        "welcome123!",
        "letmein1!",
        "admin123!",
        "changeme1!",
    }
)


class PasswordValidationError(ValueError):
    """Raised when password validation fails."""

    pass


def generate_invitation_token() -> str:
    """Generate an opaque invitation token.

    The token comes straight from the OS CSPRNG and carries no structure
    derived from the invitee, tenant or clock.
    """
    return secrets.token_urlsafe(INVITATION_TOKEN_BYTES)


def validate_password(password: str) -> None:
    """Validate password meets security requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    - Not a well-known password

    Args:
        password: Plain text password to validate

    Raises:
        PasswordValidationError: If password does not meet requirements
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r'[!@#$%^&*(),.?":{}|<>]', password):
        raise PasswordValidationError("Password must contain at least one special character")

    if password.lower() in _COMMON_PASSWORDS:
        raise PasswordValidationError(
            "Password is too common. Please choose a more unique password"
        )


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token.

    Issuance belongs to the identity service; this exists so operators and
    tests can mint tokens compatible with ``decode_token``.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode["exp"] = datetime.now(UTC) + expires_delta
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """Decode and validate a JWT token.

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt_exceptions.PyJWTError:
        return None
