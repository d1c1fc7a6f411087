"""Sync API endpoints."""

import logging
from datetime import date, datetime, timedelta
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select, desc

from healthbridge.core.services import Services, get_services
from healthbridge.models.sync_log import SyncLog
from healthbridge.schemas.responses import (
    SyncStateResponse,
    SyncStatusResponse,
    WipeResponse,
    WorkerRunResponse,
)
from healthbridge.services.errors import SyncError, NetworkTimeoutError, classify
from healthbridge.services.sync import day_bounds

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])

WORKERS = ("daily", "intraday", "backfill")


class SyncResponse(BaseModel):
    message: str
    worker: str


class BackfillRequest(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    days: int | None = None


class BackfillResponse(BaseModel):
    message: str
    start_date: str
    end_date: str
    total_days: int


class BackfillStatusResponse(BaseModel):
    is_running: bool
    start_date: str | None = None
    end_date: str | None = None
    total_days: int | None = None
    days_completed: int | None = None
    days_failed: int | None = None
    current_date: str | None = None
    started_at: datetime | None = None


class DebugSyncResponse(BaseModel):
    date: str
    status_code: int
    success: bool
    error_body: str | None = None


async def _run_worker_in_background(services: Services, worker):
    """Background task to run a worker and log the run."""
    try:
        await services.run_and_log(worker)
    except Exception as e:
        logger.error(f"Background {worker.name} sync failed: {e}")


@router.post("/daily", response_model=SyncResponse)
async def sync_daily(
    background_tasks: BackgroundTasks,
    days: int | None = None,
    services: Services = Depends(get_services),
):
    """Trigger the rolling-window sync of past days."""
    if days is not None and not 1 <= days <= services.settings.backfill_max_days:
        raise HTTPException(status_code=422, detail="days out of range")

    worker = services.daily_worker(days)
    background_tasks.add_task(_run_worker_in_background, services, worker)

    return SyncResponse(
        message=f"Daily sync started for {worker.window_days} days",
        worker=worker.name,
    )


@router.post("/intraday", response_model=SyncResponse)
async def sync_intraday(
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """Trigger a sync of today."""
    worker = services.intraday_worker()
    background_tasks.add_task(_run_worker_in_background, services, worker)
    return SyncResponse(message="Intraday sync started", worker=worker.name)


@router.post("/debug", response_model=DebugSyncResponse)
async def sync_debug(services: Services = Depends(get_services)):
    """Capture yesterday and send it to the debug ingest endpoint.

    Sync state is not read or written.
    """
    sync = services.sync
    yesterday = sync.today() - timedelta(days=1)
    start, end = day_bounds(yesterday, sync.tz)

    try:
        payload = await sync.build_payload(yesterday, start, end)
        result = await services.ingest.post_debug(payload)
    except NetworkTimeoutError as e:
        raise HTTPException(status_code=504, detail=classify(e))
    except SyncError as e:
        raise HTTPException(status_code=502, detail=classify(e))

    return DebugSyncResponse(
        date=yesterday.isoformat(),
        status_code=result.status_code,
        success=result.success,
        error_body=result.error_body,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(services: Services = Depends(get_services)):
    """Get sync status - last run per worker and per-date totals."""
    last_runs = {}
    async with services.session_maker() as db:
        for worker in WORKERS:
            result = await db.execute(
                select(SyncLog)
                .where(SyncLog.worker == worker)
                .order_by(desc(SyncLog.completed_at))
                .limit(1)
            )
            log = result.scalar_one_or_none()
            last_runs[worker] = WorkerRunResponse.model_validate(log) if log else None

    states = await services.state_store.list_all()

    return SyncStatusResponse(
        last_runs=last_runs,
        last_intraday_run=await services.preferences.get_last_intraday_run(),
        synced_dates=sum(1 for s in states if s.is_synced),
        failed_dates=sum(1 for s in states if s.attempt_count > 0),
    )


@router.get("/state", response_model=list[SyncStateResponse])
async def list_sync_state(services: Services = Depends(get_services)):
    """Every stored per-date state, newest date first."""
    states = await services.state_store.list_all()
    return [SyncStateResponse.model_validate(s) for s in states]


@router.get("/state/{date_key}", response_model=SyncStateResponse)
async def get_sync_state(date_key: str, services: Services = Depends(get_services)):
    try:
        date.fromisoformat(date_key)
    except ValueError:
        raise HTTPException(status_code=422, detail="date must be YYYY-MM-DD")

    state = await services.state_store.get(date_key)
    if state is None:
        raise HTTPException(status_code=404, detail=f"No sync state for {date_key}")
    return SyncStateResponse.model_validate(state)


@router.delete("/state", response_model=WipeResponse)
async def wipe_sync_state(services: Services = Depends(get_services)):
    """Wipe all sync state so every date is treated as changed on the next runs."""
    deleted = await services.state_store.clear_all()
    return WipeResponse(message="Sync state wiped", deleted=deleted)


@router.get("/backfill/status", response_model=BackfillStatusResponse)
async def backfill_status(services: Services = Depends(get_services)):
    """Get the current backfill progress."""
    worker = services.current_backfill
    if worker is None:
        return BackfillStatusResponse(is_running=False)

    progress = worker.progress
    return BackfillStatusResponse(
        is_running=progress.is_running,
        start_date=progress.start_date.isoformat(),
        end_date=progress.end_date.isoformat(),
        total_days=progress.total_days,
        days_completed=progress.days_completed,
        days_failed=progress.days_failed,
        current_date=progress.current_date.isoformat() if progress.current_date else None,
        started_at=progress.started_at,
    )


@router.post("/backfill", response_model=BackfillResponse)
async def sync_backfill(
    request: BackfillRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """
    Trigger a backfill sync for a date range.

    Provide either `days` (last N days ending yesterday) or both
    `start_date` and `end_date` (inclusive).
    """
    current = services.current_backfill
    if current is not None and current.progress.is_running:
        raise HTTPException(
            status_code=409,
            detail="A backfill is already running. Check /api/sync/backfill/status for progress.",
        )

    today = services.sync.today()
    max_days = services.settings.backfill_max_days
    if request.days is not None:
        if not 1 <= request.days <= max_days:
            raise HTTPException(status_code=422, detail=f"days must be between 1 and {max_days}")
        end_date = today - timedelta(days=1)
        start_date = end_date - timedelta(days=request.days - 1)
    elif request.start_date is not None and request.end_date is not None:
        start_date = request.start_date
        end_date = request.end_date
    else:
        raise HTTPException(
            status_code=422,
            detail="Provide either 'days' or both 'start_date' and 'end_date'.",
        )

    if start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must be before or equal to end_date")
    if end_date > today:
        raise HTTPException(status_code=422, detail="end_date cannot be in the future")

    total_days = (end_date - start_date).days + 1
    if total_days > max_days:
        raise HTTPException(status_code=422, detail=f"Date range too large ({total_days} days). Maximum is {max_days}.")

    worker = services.backfill_worker(start_date, end_date)
    # Mark running before the background task starts so a second request sees it
    worker.progress.is_running = True
    services.current_backfill = worker
    background_tasks.add_task(_run_worker_in_background, services, worker)

    return BackfillResponse(
        message=f"Backfill started for {total_days} days",
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        total_days=total_days,
    )
