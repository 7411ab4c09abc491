from pydantic_settings import BaseSettings
from typing import Optional
import os


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing"""


class Settings(BaseSettings):
    # Environment configuration
    environment: str = os.getenv("ENVIRONMENT", "development")

    # Database configuration (async SQLAlchemy URL, e.g. postgresql+asyncpg://...)
    database_url: Optional[str] = os.getenv("DATABASE_URL", "")
    database_echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"

    # Frontend URL (for CORS and checkout redirects)
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5000")

    # JWT configuration (tokens are issued by the auth service)
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-this")
    jwt_algorithm: str = "HS256"

    # Stripe configuration
    stripe_secret_key: Optional[str] = os.getenv("STRIPE_SECRET_KEY", "")
    # Optional: without it webhooks are accepted unverified
    stripe_webhook_secret: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    stripe_currency: str = os.getenv("STRIPE_CURRENCY", "usd")

    class Config:
        env_file = ".env"


settings = Settings()


def validate_settings(current: Settings = settings) -> None:
    """Fail fast on configuration the service cannot run without"""
    if not current.stripe_secret_key:
        raise ConfigurationError("Missing required Stripe secret: STRIPE_SECRET_KEY")
