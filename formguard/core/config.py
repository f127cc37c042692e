"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    app_name: str = "formguard"
    debug: bool = False

    # Storage. When unset, a SQLite file under data_dir is used.
    database_url: str | None = None
    data_dir: str = "data"

    # Rules
    rules_dir: str = "formguard/compliance/data"
    default_jurisdiction: str = "US"
    rule_load_timeout: float = 10.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
