from fastapi import APIRouter, Depends
from pydantic import BaseModel

from healthbridge.core.services import Services, get_services

router = APIRouter(prefix="/api", tags=["config"])


class HealthResponse(BaseModel):
    status: str
    version: str


class ConfigResponse(BaseModel):
    db_path: str
    ingest_base_url: str
    ingest_timeout_seconds: float
    source_app: str
    tz: str
    daily_window_days: int
    daily_interval_hours: int
    intraday_interval_minutes: int
    backfill_delay_seconds: float
    scheduler_enabled: bool
    debug: bool


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version="0.1.0")


@router.get("/config", response_model=ConfigResponse)
async def get_config(services: Services = Depends(get_services)) -> ConfigResponse:
    """Get current configuration (excluding secrets)."""
    settings = services.settings
    return ConfigResponse(
        db_path=settings.db_path,
        ingest_base_url=settings.ingest_base_url,
        ingest_timeout_seconds=settings.ingest_timeout_seconds,
        source_app=services.source.source_app,
        tz=settings.tz,
        daily_window_days=settings.daily_window_days,
        daily_interval_hours=settings.daily_interval_hours,
        intraday_interval_minutes=settings.intraday_interval_minutes,
        backfill_delay_seconds=settings.backfill_delay_seconds,
        scheduler_enabled=settings.scheduler_enabled,
        debug=settings.debug,
    )
