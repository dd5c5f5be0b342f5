"""
Configuration and settings for the GSDapp backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development", env="ENVIRONMENT")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )

    # Queue (Redis) for background task categorization
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    redis_queue_key: str = Field(default="gsd:analysis-jobs", env="REDIS_QUEUE_KEY")

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-3-flash-preview", env="GEMINI_MODEL")

    # Only subscribers with AI features may call the AI endpoints.
    enforce_ai_tier: bool = Field(default=False, env="ENFORCE_AI_TIER")

    # Polar.sh billing webhooks
    polar_webhook_secret: Optional[str] = Field(
        default=None, env="POLAR_WEBHOOK_SECRET"
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def webhook_max_age_ms(self) -> int:
        # 5 minutes in production, 1 hour elsewhere.
        return 5 * 60 * 1000 if self.is_production else 60 * 60 * 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
