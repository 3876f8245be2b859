"""
Vital Flow Configuration
========================
All environment variables in one place. Pydantic Settings validates
types at startup so a bad storage path or model name fails on boot.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Local storage ---
    # One JSON file per logical key lives in this directory.
    storage_dir: str = ".vitalflow"

    # --- Anthropic / Claude API ---
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    # Insights are a short paragraph or two of prose
    anthropic_max_tokens: int = 600
    ai_request_timeout_seconds: float = 30.0

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:19006"]

    # --- Charts ---
    trend_chart_height: float = 120.0

    # --- Feature flags ---
    # Kill switch: if False, insight requests fail fast without a network call.
    enable_ai_insights: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
