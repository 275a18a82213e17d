"""
CartCare — Configuration settings.

Loads from environment variables (and .env) with sensible defaults.
Risk thresholds are NOT configuration; they live in modules/maintenance/risk.py.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./cartcare.db"
    # Upper bound for a single store call (SQLite lock wait / driver timeout)
    store_timeout_seconds: float = 10.0

    # Auto-scheduler
    telemetry_window_days: int = 7
    upcoming_window_days: int = 3
    autoschedule_max_workers: int = 1

    # Advisory generator (OpenAI-compatible chat completions endpoint).
    # Leave advisory_api_url empty to disable advisory narratives.
    advisory_api_url: Optional[str] = None
    advisory_api_key: Optional[str] = None
    advisory_model: str = "google/gemini-2.5-flash"
    advisory_timeout_seconds: float = 15.0

    # Notifications - webhook endpoint, empty disables external delivery
    notification_webhook_url: Optional[str] = None
    notification_webhook_type: str = "generic"  # generic | slack | discord
    notification_timeout_seconds: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Comma-separated list, e.g. CORS_ORIGINS=http://localhost:3000,http://example.com
    cors_origins: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
