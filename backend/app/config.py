"""Application configuration."""

import logging
from pydantic_settings import BaseSettings
from functools import lru_cache

logger = logging.getLogger(__name__)

_DEV_SECRET_KEY = "dev-secret-key-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    APP_NAME: str = "Workflow Marketplace"
    APP_VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, testing, production

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./marketplace.db"
    DATABASE_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Security Settings
    # MUST be set in environment for production
    SECRET_KEY: str = _DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Payments (Stripe)
    # Without STRIPE_SECRET_KEY checkout runs in simulated mode
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds
    CURRENCY: str = "usd"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Email (SMTP); delivery is skipped when SMTP_HOST is empty
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@workflow-marketplace.local"

    # Workflow file storage
    FILE_FETCH_TIMEOUT: float = 15.0

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8080"
    ALLOW_CREDENTIALS: bool = True

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def payments_simulated(self) -> bool:
        """True when no Stripe API key is configured."""
        return not self.STRIPE_SECRET_KEY

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def validate_secrets(self) -> None:
        """Validate that critical secrets are not using defaults in production.

        Raises:
            RuntimeError: If production runs with the development SECRET_KEY
                or without a webhook signing secret
        """
        if self.is_production:
            if not self.SECRET_KEY or self.SECRET_KEY == _DEV_SECRET_KEY:
                raise RuntimeError(
                    "CRITICAL: SECRET_KEY environment variable must be set in production. "
                    "Do not use default values."
                )
            if not self.STRIPE_WEBHOOK_SECRET:
                raise RuntimeError(
                    "CRITICAL: STRIPE_WEBHOOK_SECRET must be set in production, "
                    "payment webhooks cannot be verified without it."
                )
        elif self.SECRET_KEY == _DEV_SECRET_KEY:
            logger.warning("Using the development SECRET_KEY; set SECRET_KEY before deploying")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses caching to ensure settings are loaded only once.

    Returns:
        Settings object with all configuration values
    """
    return Settings()
