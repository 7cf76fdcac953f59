"""
Application configuration management with environment variables.

This module provides centralized configuration management using Pydantic
BaseSettings for type-safe environment variable handling with validation
and default values. Variable names follow the deployment environment
(MONGODB_URI, SESSION_SECRET, PORT, NODE_ENV) so existing hosting
configuration keeps working.
"""

from functools import lru_cache
from typing import Annotated, Literal, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_SESSION_SECRET = "your-session-secret-key"
DEFAULT_JWT_SECRET = "dev-jwt-secret-key-change-in-production"
DEFAULT_DATABASE_NAME = "shivalik_service_hub"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Every field can be overridden by the upper-cased field name
    (e.g. MONGODB_URI, SESSION_SECRET). The environment is also read
    from NODE_ENV for compatibility with the frontend deployment setup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    app_name: str = Field(
        default="Shivalik Service Hub",
        description="Application name",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version",
    )

    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
        description="Application environment",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application logging level",
    )

    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )

    port: int = Field(
        default=5000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on",
    )

    reload: bool = Field(
        default=False,
        description="Restart on code changes (development only; no exit status on startup failure)",
    )

    # Database Configuration
    mongodb_uri: str = Field(
        default=f"mongodb://localhost:27017/{DEFAULT_DATABASE_NAME}",
        description="MongoDB connection URI",
    )

    mongodb_database: Optional[str] = Field(
        default=None,
        description="Database name (defaults to the one named in the URI)",
    )

    mongodb_server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="Time allowed for MongoDB server selection on connect",
    )

    # Session Configuration
    session_secret: str = Field(
        default=DEFAULT_SESSION_SECRET,
        description="Secret used to sign session cookies",
    )

    session_cookie_name: str = Field(
        default="shivalik.sid",
        description="Name of the session cookie",
    )

    session_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 7,
        ge=60,
        description="Session lifetime (cookie max-age and store expiry)",
    )

    session_touch_after_seconds: int = Field(
        default=24 * 3600,
        ge=0,
        description="Minimum interval between expiry refreshes of unchanged sessions",
    )

    session_collection: str = Field(
        default="sessions",
        description="MongoDB collection holding session documents",
    )

    # CORS Configuration
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:3000",
            "https://shivaklik-frontend.vercel.app",
        ],
        description="Origins allowed by exact match",
    )

    cors_origin_pattern: str = Field(
        default="https://shivaklik-frontend*.vercel.app",
        description="Glob pattern for preview deployment origins",
    )

    # JWT Configuration
    jwt_secret_key: str = Field(
        default=DEFAULT_JWT_SECRET,
        min_length=32,
        description="Secret key for JWT token signing",
    )

    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )

    jwt_access_token_expire_minutes: int = Field(
        default=60,
        ge=1,
        description="JWT access token expiration time in minutes",
    )

    jwt_refresh_token_expire_days: int = Field(
        default=7,
        ge=1,
        description="JWT refresh token expiration time in days",
    )

    # Payment Configuration
    stripe_secret_key: str = Field(
        default="",
        description="Stripe secret API key",
    )

    stripe_webhook_secret: str = Field(
        default="",
        description="Stripe webhook signing secret",
    )

    payment_currency: str = Field(
        default="inr",
        min_length=3,
        max_length=3,
        description="Three-letter ISO currency code for payments",
    )

    # Email Configuration
    email_sender: Optional[str] = Field(
        default=None,
        description="Verified SES sender address; email is disabled when unset",
    )

    aws_region: str = Field(
        default="ap-south-1",
        description="AWS region for SES",
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        description="AWS access key ID (falls back to the default credential chain)",
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        description="AWS secret access key",
    )

    # Admin bootstrap
    admin_username: Optional[str] = Field(
        default=None,
        description="Username of the admin account created at startup",
    )

    admin_password: Optional[str] = Field(
        default=None,
        description="Password of the admin account created at startup",
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting of login endpoints",
    )

    login_rate_limit: str = Field(
        default="10/minute",
        description="Rate limit applied to login endpoints",
    )

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str, info) -> str:
        """
        Reject the placeholder session secret in production.

        Args:
            v: Session secret value
            info: Validation info context

        Returns:
            Validated session secret

        Raises:
            ValueError: If the default secret is used in production
        """
        environment = info.data.get("environment", "development")
        if environment == "production" and v == DEFAULT_SESSION_SECRET:
            raise ValueError(
                "Default session secret cannot be used in production environment. "
                "Set SESSION_SECRET environment variable."
            )
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str, info) -> str:
        """
        Reject the placeholder JWT secret in production.

        Raises:
            ValueError: If the default secret is used in production
        """
        environment = info.data.get("environment", "development")
        if environment == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError(
                "Default JWT secret cannot be used in production environment. "
                "Set JWT_SECRET_KEY environment variable."
            )
        return v

    @field_validator("mongodb_uri")
    @classmethod
    def validate_mongodb_uri(cls, v: str) -> str:
        """
        Validate MongoDB URI format.

        Args:
            v: MongoDB URI value

        Returns:
            Validated URI

        Raises:
            ValueError: If the URI scheme is not a MongoDB scheme
        """
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v) -> list[str]:
        """
        Parse CORS origins from string or list.

        Args:
            v: CORS origins value (comma separated string or list)

        Returns:
            List of CORS origin URLs
        """
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("payment_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Store currency codes lower-cased as Stripe expects."""
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def cookie_secure(self) -> bool:
        """Session cookies are HTTPS-only in production."""
        return self.is_production

    @property
    def cookie_samesite(self) -> Literal["none", "lax"]:
        """Cross-site cookies are needed in production where the frontend is on another domain."""
        return "none" if self.is_production else "lax"

    @property
    def database_name(self) -> str:
        """Resolve the database name from settings or the connection URI."""
        if self.mongodb_database:
            return self.mongodb_database
        path = urlparse(self.mongodb_uri).path.lstrip("/")
        return path or DEFAULT_DATABASE_NAME


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
