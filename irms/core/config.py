# irms/core/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from environment variables (and .env)."""

    app_name: str = "IRMS"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./irms.db"
    enable_create_all: bool = True

    # Sessions
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    session_ttl_hours: int = 24
    session_cookie_name: str = "irms_session"
    session_cookie_secure: bool = False

    # bcrypt cost factor; keep >= 12 outside of tests
    bcrypt_rounds: int = 12

    # Admin account ensured by scripts/seed.py
    seed_admin_email: str = "admin@irms.com"
    seed_admin_password: str = "ChangeMe123!"

    # AI advisory (OpenAI-compatible chat completions API)
    ai_api_key: Optional[str] = None
    ai_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 5.0

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
