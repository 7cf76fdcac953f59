"""
Authentication service for customers (JWT) and admins (session).

Customer login and registration return a token pair; admin login only
verifies credentials and leaves session handling to the router.
"""

from typing import Any, Optional

from service_hub.core.logging import get_logger, set_user_id
from service_hub.core.security import (
    REFRESH_TOKEN_TYPE,
    TokenError,
    create_access_token,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
    verify_token_type,
)
from service_hub.services.auth.repository import AdminRepository
from service_hub.services.users.repository import DuplicateEmailError, UserRepository

logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base exception for authentication errors."""

    def __init__(self, message: str, code: str = "AUTH_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class RegistrationError(AuthenticationError):
    """Exception raised during user registration."""

    def __init__(self, message: str, code: str = "REGISTRATION_FAILED"):
        super().__init__(message, code)


class LoginError(AuthenticationError):
    """Exception raised during login."""

    def __init__(self, message: str, code: str = "INVALID_CREDENTIALS"):
        super().__init__(message, code)


def _public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in user.items() if key != "password_hash"}


class AuthService:
    """
    Credential checks and token issuance.

    Attributes:
        users: Customer repository
        admins: Admin repository
    """

    def __init__(self, users: UserRepository, admins: AdminRepository):
        self.users = users
        self.admins = admins

    async def register_user(
        self,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
    ) -> tuple[dict[str, Any], dict[str, str]]:
        """
        Create a customer account and sign it in.

        Returns:
            Tuple of (user, token pair)

        Raises:
            RegistrationError: EMAIL_EXISTS if the email is taken
        """
        try:
            user = await self.users.create(
                name=name,
                email=email,
                password_hash=hash_password(password),
                phone=phone,
            )
        except DuplicateEmailError as e:
            logger.warning("Registration failed: email already registered")
            raise RegistrationError(
                "An account with this email already exists", code="EMAIL_EXISTS"
            ) from e

        set_user_id(user["id"])
        return user, create_token_pair(user["id"], user["email"])

    async def login_user(self, email: str, password: str) -> tuple[dict[str, Any], dict[str, str]]:
        """
        Verify customer credentials.

        Raises:
            LoginError: INVALID_CREDENTIALS or ACCOUNT_INACTIVE
        """
        user = await self.users.get_credentials(email)
        if user is None or not verify_password(password, user.get("password_hash", "")):
            logger.warning("Login failed: invalid credentials")
            raise LoginError("Invalid email or password")

        if not user.get("is_active", True):
            logger.warning("Login failed: account inactive", user_id=user["id"])
            raise LoginError("Account is inactive", code="ACCOUNT_INACTIVE")

        await self.users.record_login(user["id"])
        set_user_id(user["id"])
        logger.info("User logged in", user_id=user["id"])
        return _public_user(user), create_token_pair(user["id"], user["email"])

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token.

        Raises:
            AuthenticationError: TOKEN_INVALID, TOKEN_EXPIRED, USER_NOT_FOUND
                or ACCOUNT_INACTIVE
        """
        try:
            payload = decode_token(refresh_token)
        except TokenError as e:
            raise AuthenticationError(str(e), code=e.code) from e

        if not verify_token_type(payload, REFRESH_TOKEN_TYPE) or not payload.get("sub"):
            raise AuthenticationError("Invalid refresh token", code="TOKEN_INVALID")

        user = await self.users.get_by_id(payload["sub"])
        if user is None:
            raise AuthenticationError("User not found", code="USER_NOT_FOUND")
        if not user.get("is_active", True):
            raise AuthenticationError("Account is inactive", code="ACCOUNT_INACTIVE")

        return create_access_token({"sub": user["id"], "email": user["email"]})

    async def authenticate_admin(self, username: str, password: str) -> dict[str, Any]:
        """
        Verify admin credentials.

        Raises:
            LoginError: INVALID_CREDENTIALS
        """
        admin = await self.admins.get_credentials(username)
        if admin is None or not verify_password(password, admin.get("password_hash", "")):
            logger.warning("Admin login failed", username=username)
            raise LoginError("Invalid username or password")

        await self.admins.record_login(admin["id"])
        logger.info("Admin logged in", admin_id=admin["id"], username=username)
        return _public_user(admin)
