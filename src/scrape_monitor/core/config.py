"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Scrape Monitor"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"

    # API
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Bank backend (last scrape time, refresh trigger, refresh status)
    BACKEND_BASE_URL: str = "http://localhost:8080"
    BACKEND_TIMEOUT: float = 10.0
    BACKEND_RETRY_ATTEMPTS: int = 3
    BACKEND_RETRY_MIN_WAIT: float = 0.5
    BACKEND_RETRY_MAX_WAIT: float = 5.0

    # Refresh polling
    REFRESH_POLL_INTERVAL: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )


settings = Settings()
