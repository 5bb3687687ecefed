"""Application configuration."""

import os
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden with environment variables.
    """

    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "CineMatch"

    # Critical settings (must be provided)
    JWT_SECRET_KEY: str = ""

    # Database
    DATABASE_URL: str = "sqlite:///./cinematch.db"
    POOL_SIZE: int = 10
    MAX_OVERFLOW: int = 20
    POOL_RECYCLE: int = 3600
    POOL_TIMEOUT: int = 30
    SQL_ECHO: bool = False

    # JWT
    ALGORITHM: str = "HS256"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Matching
    CANDIDATE_DEFAULT_TAKE: int = 20

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = []

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables
    )

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)

        # Validate critical settings
        critical_settings = [
            ("JWT_SECRET_KEY", self.JWT_SECRET_KEY),
            ("DATABASE_URL", self.DATABASE_URL),
        ]

        missing_settings = [name for name, value in critical_settings if not value]
        if missing_settings:
            raise ValueError(
                f"Critical settings missing: {', '.join(missing_settings)}"
            )


# Create global settings instance
settings = Settings()

# Validate required settings in production
if os.getenv("ENVIRONMENT") == "production":
    assert not settings.DATABASE_URL.startswith(
        "sqlite"
    ), "DATABASE_URL must point to a server database in production"
