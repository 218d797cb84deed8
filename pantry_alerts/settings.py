"""Runtime settings for the notification engine.

Uses pydantic-settings to load from environment variables (prefixed
PANTRY_ALERTS_) or a .env file. These are process/deployment settings; the
user-facing notification preferences live in the key-value store.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class RuntimeSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # --- Persistence ---
    use_database: bool = False
    database_url: str = "sqlite+aiosqlite:///pantry_alerts.db"
    settings_key: str = "notification_settings"
    records_key: str = "scheduled_notifications"

    # --- Lifecycle ---
    retention_days: int = 7

    # --- Logging ---
    setup_logging: bool = False
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "pantry-alerts"

    model_config = {
        "env_prefix": "PANTRY_ALERTS_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_runtime_settings() -> RuntimeSettings:
    """Get cached settings singleton."""
    return RuntimeSettings()
