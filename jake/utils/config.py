"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Claude API (optional - LLM stages fall back to canned output without it)
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Google Maps (direct) or a Maps proxy. Neither set = mock mode.
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    MAPS_PROXY_URL: Optional[str] = None
    MAPS_PROXY_KEY: Optional[str] = None

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Limits
    MAX_COMPETITORS: int = 5
    MAX_CONCURRENT_PIPELINES: Optional[int] = None

    # Timeouts (seconds)
    HTTP_TIMEOUT: float = 10.0
    STAGE_TIMEOUT: float = 60.0
    LLM_TIMEOUT: float = 120.0

    # Analysis creation rate limit (per user)
    ANALYSIS_RATE_LIMIT: int = 20
    ANALYSIS_RATE_WINDOW: int = 3600

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
