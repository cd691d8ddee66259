"""
Configuration
=============

Environment-driven settings for the SQL analyst.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from ``SQL_ANALYST_*`` variables or a ``.env`` file."""

    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = ""

    # Model
    model: str = "openai/gpt-4o"
    openai_api_key: str | None = None
    openai_base_url: str | None = None

    # Data
    database_url: str = "sqlite:///./analyst.db"
    pool_min_size: int = Field(default=1, ge=1)
    pool_max_size: int = Field(default=10, ge=1)
    entities_dir: str = "./entities"
    search_mode: Literal["keyword", "embedding"] = "keyword"
    embedding_model: str = "all-MiniLM-L6-v2"

    # Orchestration
    max_steps: int = Field(default=100, ge=1)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_capacity: int = Field(default=100, ge=1)
    cost_strategy: Literal["heuristic", "explain"] = "heuristic"

    model_config = SettingsConfigDict(
        env_prefix="SQL_ANALYST_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
