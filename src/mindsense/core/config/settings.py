"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """MindSense demo configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    mindsense_log_level: str = "info"

    # Storage (app state)
    db_path: str = "~/.mindsense/state.db"

    # Encryption; empty stores values as plain JSON
    encryption_key: str = ""

    # Demo content
    default_scenario: str = "balanced_day"
    catalog_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
