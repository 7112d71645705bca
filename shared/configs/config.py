"""
Application configuration using Pydantic settings.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Wiki Watchlist Service"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///watchlist.db"

    # Notifications
    enable_email_notification: bool = False  # E-mail on changes to watched pages
    show_updated_marker: bool = True  # Highlight pages changed since last visit

    # Read-only mode
    read_only: bool = False
    read_only_reason: Optional[str] = None

    # Namespaces that can't be watched in addition to the virtual ones
    non_watchable_namespaces: List[int] = []

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    log_file: Optional[str] = None

    # General
    environment: str = "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "WATCHLIST_",
        "extra": "ignore"  # Allow extra fields from .env file
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
