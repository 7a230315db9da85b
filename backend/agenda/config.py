"""
Application configuration using Pydantic Settings.
All config is loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "agenda"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"  # comma-separated
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── Remote store ─────────────────────────────────────
    STORE_BACKEND: str = "supabase"  # supabase | http

    # ── Sessions ─────────────────────────────────────────
    MAX_SESSIONS: int = 256  # least recently used sessions are closed beyond this
    SESSION_IDLE_SECONDS: int = 3600

    # ── Supabase ─────────────────────────────────────────
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""  # anon/public key
    TASK_EVENTS_TABLE: str = "task_events"

    # ── Task-events REST API ─────────────────────────────
    TASK_EVENTS_API_BASE_URL: str = "http://localhost:8080/api"
    TASK_EVENTS_API_TOKEN: str = ""
    API_TIMEOUT: int = 30  # HTTP timeout in seconds

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (singleton)."""
    return Settings()
