"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides helper functions for accessing cached settings,
logging and email configuration.
"""

import logging
from functools import lru_cache
from typing import List

from fastapi_mail import ConnectionConfig
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Every external capability (search index, object store, mail) is
    switched on by the presence of its credentials. Missing credentials
    select the disabled variant of that capability.

    Attributes:
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Access token lifetime in minutes.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        REDIS_URL: Redis connection URL for rate limiting.
        RATE_LIMIT_ENABLED: Whether public endpoints are rate limited.
        RATE_LIMIT_TIMES: Requests allowed per window and client.
        RATE_LIMIT_SECONDS: Length of the rate limit window.
        CLOUDINARY_URL: Cloudinary connection URL for pet pictures.
        CLOUDINARY_FOLDER: Cloudinary folder pet pictures are stored in.
        ALGOLIA_APP_ID: Algolia application id.
        ALGOLIA_ADMIN_KEY: Algolia admin API key.
        ALGOLIA_INDEX: Name of the Algolia index holding pets.
        SEARCH_TIMEOUT_SECONDS: Upper bound for a single index call.
        SMTP_FROM_EMAIL: Sender email address for outgoing emails.
        SMTP_USER: SMTP username.
        SMTP_PASSWORD: SMTP password.
        SMTP_PORT: SMTP server port.
        SMTP_HOST: SMTP server host, ``None`` disables email delivery.
        LOG_LEVEL: Root log level.
    """

    DATABASE_URL: str = "sqlite:///./lostpets.db"
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    ALLOWED_ORIGINS: List[str] = ["*"]
    REDIS_URL: str = "redis://redis:6379"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_TIMES: int = 30
    RATE_LIMIT_SECONDS: int = 60
    CLOUDINARY_URL: str | None = None
    CLOUDINARY_FOLDER: str = "lostpets"
    ALGOLIA_APP_ID: str | None = None
    ALGOLIA_ADMIN_KEY: str | None = None
    ALGOLIA_INDEX: str = "pets"
    SEARCH_TIMEOUT_SECONDS: float = 3.0
    SMTP_FROM_EMAIL: str = "notifications@example.com"
    SMTP_USER: str = "user"
    SMTP_PASSWORD: str = "password"
    SMTP_PORT: int = 1025
    SMTP_HOST: str | None = None
    LOG_LEVEL: str = "INFO"

    class Config:
        """Pydantic configuration for loading environment variables."""

        env_file = ".env"
        extra = "allow"

    @property
    def search_configured(self) -> bool:
        return bool(self.ALGOLIA_APP_ID and self.ALGOLIA_ADMIN_KEY)

    @property
    def mail_configured(self) -> bool:
        return bool(self.SMTP_HOST)


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the whole process."""

    logging.basicConfig(
        level=(level or get_settings().LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_mail_config() -> ConnectionConfig:
    """Create and return email configuration for FastAPI-Mail.

    Returns:
        ConnectionConfig: Configured email connection settings.
    """

    settings = get_settings()
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USER,
        MAIL_PASSWORD=settings.SMTP_PASSWORD,
        MAIL_FROM=settings.SMTP_FROM_EMAIL,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
    )
