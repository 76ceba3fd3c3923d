"""Application configuration via environment variables."""
from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./eventpass.db"
    CORS_ORIGINS: str = "http://localhost:5173"

    # HMAC key for credential signatures. Never log this value.
    QR_CODE_SECRET: SecretStr = SecretStr("change-me-in-production")

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
