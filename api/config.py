"""
API configuration and settings management.
"""
import os

from poster.config import Config as PosterConfig


class Config:
    """Application configuration."""

    # API settings
    API_TITLE: str = "FB Marketplace Poster API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Control surface for the Marketplace listing queue"
    HOST: str = os.getenv("API_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("API_PORT", "8000"))

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: str = os.getenv("API_LOG_FILE", "api.log")

    @classmethod
    def validate(cls) -> list:
        """Missing automation settings; reported on startup, not fatal."""
        return PosterConfig.validate()


# Global config instance
config = Config()
