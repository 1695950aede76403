"""
Configuration management for the itinerary gateway
"""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway configuration loaded from environment variables"""

    # Server Configuration
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Database credentials (validated by the connection manager, not here)
    DB_USER: str = ""
    DB_PASS: str = ""
    DB_NAME: str = ""

    # Either a Cloud SQL instance reference or a plain host
    INSTANCE_CONNECTION_NAME: str = ""
    DB_HOST: str = ""
    DB_PORT: int = 5432
    PRIVATE_IP: str = ""

    # Full SQLAlchemy URL, used for local development and tests
    DATABASE_URL: str = ""

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 2
    DB_CONNECT_ATTEMPTS: int = 5
    DB_CONNECT_RETRY_DELAY: float = 2.0
    DB_CONNECT_TIMEOUT: float = 10.0
    DB_CREATE_SCHEMA: bool = True
    HEALTH_CHECK_TIMEOUT: float = 2.0

    # Itinerary planner
    ITINERARY_SERVICE_URL: str = "https://gsc2025-sps-418414887688.us-central1.run.app/run"
    ITINERARY_TIMEOUT: float = 60.0

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def use_private_ip(self) -> bool:
        # Presence flag: any non-empty value enables it
        return bool(self.PRIVATE_IP)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
