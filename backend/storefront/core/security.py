"""
Credential management: password generation, format rules, hashing and JWT tokens.
"""
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from storefront.config import get_settings
from storefront.core.errors import CredentialError

MIN_PASSWORD_LENGTH = 6

# (enabled by default, characters)
CHARACTER_SETS = [
    (True, string.digits),
    (True, string.ascii_lowercase),
    (True, string.ascii_uppercase),
    (False, string.punctuation),
]

# Password hashing context using bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)


def password_charset(use_symbols: bool = False) -> str:
    """Characters a generated password is drawn from."""
    return "".join(
        chars for enabled, chars in CHARACTER_SETS
        if enabled or use_symbols
    )


def generate_password(length: Optional[int] = None, use_symbols: bool = False) -> str:
    """
    Generate a random password.

    Every character is an independent uniform draw from the charset using
    the `secrets` CSPRNG. Draws missing one of the character classes are
    rejected, so the result always satisfies `validate_password`.

    Args:
        length: Number of characters (defaults to settings.password_length)
        use_symbols: Also draw from ASCII punctuation

    Returns:
        Plain text password
    """
    if length is None:
        length = get_settings().password_length
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be at least {MIN_PASSWORD_LENGTH}")

    classes = [chars for enabled, chars in CHARACTER_SETS if enabled or use_symbols]
    charset = password_charset(use_symbols)
    while True:
        password = "".join(secrets.choice(charset) for _ in range(length))
        if all(any(c in chars for c in password) for chars in classes):
            return password


def validate_password(password: Any) -> bool:
    """
    Check the password format rules.

    At least 6 characters with one uppercase letter, one lowercase letter
    and one digit.
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return False
    return (
        any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    )


def hash_password(plain_password: str) -> str:
    """
    Hash a plain password using bcrypt.

    Args:
        plain_password: The plain text password to hash

    Returns:
        Hashed password string
    """
    return pwd_context.hash(plain_password)


def is_password_hash(value: Any) -> bool:
    """True if value is a hash this context can verify against."""
    if not isinstance(value, str):
        return False
    return pwd_context.identify(value) is not None


def _checked_hash(hashed_password: Any) -> str:
    if not is_password_hash(hashed_password):
        raise CredentialError("Unrecognized password hash")
    return hashed_password


def verify_password(plain_password: str, hashed_password: Any) -> bool:
    """
    Verify a plain password against a hashed password.

    A missing or malformed hash never raises; it simply does not match.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    if not isinstance(plain_password, str):
        return False
    try:
        return pwd_context.verify(plain_password, _checked_hash(hashed_password))
    except (CredentialError, ValueError, TypeError):
        return False


def create_access_token(
    user_id: str,
    is_admin: bool = False,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: Unique user identifier
        is_admin: Whether the user has back-office access
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "admin": is_admin,
        "exp": now + expires_delta,
        "iat": now,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )


__all__ = [
    "JWTError",
    "generate_password",
    "validate_password",
    "hash_password",
    "verify_password",
    "is_password_hash",
    "create_access_token",
    "decode_token",
]
