"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Process configuration. All values sourced from environment variables.

    User-editable settings (sources, item limit, AI overrides) are not here;
    they live in the key-value store as ``AppConfig``.
    """

    # Required
    database_path: str

    # Optional: LLM enrichment
    llm_api_key: str = ""
    llm_model: str = "claude-3-5-haiku-latest"
    llm_base_url: str = "https://api.anthropic.com"
    llm_max_retries: int = 3
    llm_timeout_seconds: int = 60
    summary_language: str = "English"

    # Optional: Fetching
    http_timeout_seconds: float = 30.0
    daily_refresh_hour: int = 6

    # Optional: Web
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Optional: Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"


_REQUIRED_VARS = [
    "DATABASE_PATH",
]


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables, or on an out-of-range refresh hour.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    daily_refresh_hour = int(os.environ.get("DAILY_REFRESH_HOUR", "6"))
    if not 0 <= daily_refresh_hour <= 23:
        raise ValueError(f"DAILY_REFRESH_HOUR must be 0-23, got {daily_refresh_hour}")

    return Config(
        # Required
        database_path=os.environ["DATABASE_PATH"],
        # Optional: LLM enrichment
        llm_api_key=os.environ.get("LLM_API_KEY", ""),
        llm_model=os.environ.get("LLM_MODEL", "claude-3-5-haiku-latest"),
        llm_base_url=os.environ.get("LLM_BASE_URL", "https://api.anthropic.com"),
        llm_max_retries=int(os.environ.get("LLM_MAX_RETRIES", "3")),
        llm_timeout_seconds=int(os.environ.get("LLM_TIMEOUT_SECONDS", "60")),
        summary_language=os.environ.get("SUMMARY_LANGUAGE", "English"),
        # Optional: Fetching
        http_timeout_seconds=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
        daily_refresh_hour=daily_refresh_hour,
        # Optional: Web
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=int(os.environ.get("WEB_PORT", "8080")),
        # Optional: Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )
