"""
Application configuration settings.
Uses pydantic-settings for environment variable management.
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Equity Admin"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # SQLAlchemy echoes queries when True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./equity_admin.db"

    # Security
    SECRET_KEY: str = "equity-admin-secret-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # Users allowed to download cross-company financial reports
    PLATFORM_ADMIN_EMAILS: list[str] = []

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Email delivery (optional)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: Optional[str] = None

    # Monthly financial report
    FINANCIAL_REPORT_RECIPIENTS: list[str] = []
    FINANCIAL_REPORT_SCHEDULE_ENABLED: bool = False
    REPORT_TIMEZONE: str = "America/Los_Angeles"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields from .env that aren't in the model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
