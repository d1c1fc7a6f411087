from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Database
    db_path: str = "/data/healthbridge.db"

    # Ingest service
    ingest_base_url: str
    ingest_api_key: str
    ingest_timeout_seconds: float = 15.0

    # Health data provider (Garmin Connect)
    source_app: str = "garmin_connect"
    garmin_email: str = ""
    garmin_password: str = ""
    garmin_token_dir: str = "/data/.garmin_tokens"

    # Provider pacing
    provider_request_delay_seconds: float = 0.03
    provider_quota_pause_seconds: float = 1.0
    provider_quota_pause_max_seconds: float = 30.0

    # Worker cadence
    daily_window_days: int = 14
    daily_interval_hours: int = 6
    intraday_interval_minutes: int = 60
    backfill_delay_seconds: float = 2.0
    backfill_max_days: int = 365
    scheduler_enabled: bool = True

    # Optional settings
    tz: str = "Europe/London"
    debug: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
