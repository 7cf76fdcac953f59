"""
Security utilities for password hashing and JWT token management.

This module provides:
- Password hashing with bcrypt (admins and customers)
- JWT access/refresh token creation and validation for customer auth

Admin authentication is session based and only uses the password
helpers from here.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from service_hub.core.config import get_settings
from service_hub.core.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12,
    bcrypt__ident="2b",
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class SecurityError(Exception):
    """Base exception for security-related errors."""

    def __init__(self, message: str, code: str, **context):
        super().__init__(message)
        self.code = code
        self.context = context


class TokenError(SecurityError):
    """Exception raised for token-related errors."""

    pass


class PasswordError(SecurityError):
    """Exception raised for password-related errors."""

    pass


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string

    Raises:
        PasswordError: If the password is empty or hashing fails
    """
    if not password:
        raise PasswordError("Password cannot be empty", code="EMPTY_PASSWORD")

    try:
        return pwd_context.hash(password)
    except Exception as e:
        logger.error(
            "Password hashing failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise PasswordError(
            "Failed to hash password",
            code="HASH_FAILED",
            original_error=str(e),
        ) from e


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Empty values and malformed hashes never verify.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    if not plain_password or not hashed_password:
        return False

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(
            "Password verification failed on malformed hash",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


def _create_token(
    data: Dict[str, Any], token_type: str, expires_delta: timedelta
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    to_encode = data.copy()
    to_encode.update({"exp": expire, "iat": now, "type": token_type})

    try:
        encoded = jwt.encode(
            to_encode,
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
    except JWTError as e:
        logger.error(
            "Failed to create token",
            token_type=token_type,
            error=str(e),
        )
        raise TokenError(
            f"Failed to create {token_type} token",
            code="TOKEN_CREATE_FAILED",
            original_error=str(e),
        ) from e

    logger.debug(
        "Token created",
        subject=data.get("sub"),
        token_type=token_type,
        expires_at=expire.isoformat(),
    )
    return encoded


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; ``sub`` carries the user ID
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT token string

    Raises:
        TokenError: If token creation fails
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(
        minutes=settings.jwt_access_token_expire_minutes
    )
    return _create_token(data, ACCESS_TOKEN_TYPE, lifetime)


def create_refresh_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT refresh token with the configured (long) lifetime."""
    settings = get_settings()
    lifetime = expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days)
    return _create_token(data, REFRESH_TOKEN_TYPE, lifetime)


def create_token_pair(user_id: str, email: str) -> Dict[str, str]:
    """
    Create both access and refresh tokens for a customer.

    Args:
        user_id: Customer document ID
        email: Customer email address

    Returns:
        Dictionary containing access_token and refresh_token
    """
    access_token = create_access_token({"sub": user_id, "email": email})
    refresh_token = create_refresh_token({"sub": user_id})

    logger.info("Token pair created", user_id=user_id)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
    }


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Dictionary of decoded token claims

    Raises:
        TokenError: If token is empty, invalid, expired, or malformed
    """
    if not token:
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as e:
        logger.info("Token has expired")
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError(
            "Invalid token",
            code="TOKEN_INVALID",
            original_error=str(e),
        ) from e


def verify_token_type(payload: Dict[str, Any], expected_type: str) -> bool:
    """
    Verify that a token payload has the expected type.

    Args:
        payload: Decoded token payload
        expected_type: Expected token type ("access" or "refresh")

    Returns:
        True if token type matches, False otherwise
    """
    token_type = payload.get("type")
    if token_type != expected_type:
        logger.warning(
            "Token type mismatch",
            expected=expected_type,
            actual=token_type,
            subject=payload.get("sub"),
        )
        return False
    return True

