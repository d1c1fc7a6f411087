"""Pydantic response models for API endpoints."""

from datetime import datetime
from pydantic import BaseModel


class SyncStateResponse(BaseModel):
    """Sync status of one calendar date."""
    date: str
    data_hash: str
    last_synced_at: datetime | None
    last_attempted_at: datetime | None
    last_error: str | None
    attempt_count: int
    is_synced: bool

    class Config:
        from_attributes = True


class WorkerRunResponse(BaseModel):
    """One row of the sync log."""
    worker: str
    status: str
    started_at: datetime
    completed_at: datetime | None
    error_message: str | None

    class Config:
        from_attributes = True


class SyncStatusResponse(BaseModel):
    """Overall sync health."""
    last_runs: dict[str, WorkerRunResponse | None]
    last_intraday_run: datetime | None
    synced_dates: int
    failed_dates: int


class WipeResponse(BaseModel):
    message: str
    deleted: int


class PermissionsResponse(BaseModel):
    source_app: str
    required: list[str]
    granted: bool
