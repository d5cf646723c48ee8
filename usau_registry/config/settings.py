import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Registry site
    usau_base_url: str = Field(
        "https://play.usaultimate.org", description="Root URL of the USAU registry."
    )
    user_agent: str = Field(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        description="Desktop browser User-Agent sent with every request.",
    )

    # Fetching
    request_timeout: float = Field(
        30.0, gt=0, description="Per-request timeout in seconds."
    )
    curl_binary: str = Field("curl", description="HTTP client binary for the subprocess transport.")
    use_curl: bool = Field(
        True, description="Use the subprocess transport first, falling back to httpx."
    )
    max_rankings_pages: int = Field(
        12, ge=1, description="Hard cap on rankings pages walked per division."
    )

    # Politeness delays (seconds)
    division_delay: float = Field(2.0, ge=0)
    tournament_delay: float = Field(2.0, ge=0)
    schedule_delay: float = Field(1.5, ge=0)

    # Storage
    database_path: str = Field(
        "usau_registry.db", description="SQLite file backing the registry cache."
    )

    # Diagnostics
    zero_yield_warn_bytes: int = Field(
        20_000,
        ge=0,
        description="Warn when a page this large yields nothing parseable.",
    )

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
