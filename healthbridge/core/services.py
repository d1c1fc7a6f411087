"""Composition root: builds the service graph once and hands it to workers."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from healthbridge.core.config import Settings
from healthbridge.core.database import create_engine, create_session_maker
from healthbridge.models.sync_log import SyncLog
from healthbridge.services.backfill_worker import BackfillWorker
from healthbridge.services.daily_worker import DailySyncWorker
from healthbridge.services.garmin import GarminHealthSource
from healthbridge.services.health_source import HealthDataSource
from healthbridge.services.ingest import IngestClient
from healthbridge.services.intraday_worker import IntradaySyncWorker
from healthbridge.services.preferences import PreferencesStore
from healthbridge.services.state_store import SyncStateStore
from healthbridge.services.sync import SyncService, WorkerResult

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Explicit handles shared by every worker invocation."""
    settings: Settings
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    state_store: SyncStateStore
    preferences: PreferencesStore
    source: HealthDataSource
    ingest: IngestClient
    sync: SyncService
    current_backfill: Optional[BackfillWorker] = None

    def daily_worker(self, window_days: Optional[int] = None) -> DailySyncWorker:
        return DailySyncWorker(self.sync, window_days or self.settings.daily_window_days)

    def intraday_worker(self) -> IntradaySyncWorker:
        return IntradaySyncWorker(self.sync)

    def backfill_worker(self, start_date: date, end_date: date) -> BackfillWorker:
        return BackfillWorker(self.sync, start_date, end_date, self.settings.backfill_delay_seconds)

    async def run_and_log(self, worker) -> WorkerResult:
        """Run a worker to completion and record it in the sync log."""
        started_at = datetime.utcnow()
        try:
            result = await worker.run()
        except Exception as e:
            logger.error(f"{worker.name} worker crashed: {e}")
            await self._log_run(worker.name, started_at, "failure", None, str(e))
            raise

        await self._log_run(worker.name, started_at, result.status.value, result.to_dict(), result.error)
        return result

    async def _log_run(self, worker: str, started_at: datetime, status: str, details, error: Optional[str]):
        async with self.session_maker() as session:
            session.add(SyncLog(
                worker=worker,
                started_at=started_at,
                completed_at=datetime.utcnow(),
                status=status,
                details=details,
                error_message=error,
            ))
            await session.commit()

    async def aclose(self) -> None:
        await self.ingest.close()
        await self.engine.dispose()


def build_services(
    settings: Settings,
    source: Optional[HealthDataSource] = None,
    ingest: Optional[IngestClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Services:
    """Build the service graph; ``source``, ``ingest`` and ``clock`` may be injected."""
    engine = create_engine(settings.db_path, echo=settings.debug)
    session_maker = create_session_maker(engine)
    state_store = SyncStateStore(session_maker)
    preferences = PreferencesStore(session_maker)

    if source is None:
        source = GarminHealthSource(
            settings.garmin_email,
            settings.garmin_password,
            settings.garmin_token_dir,
            request_delay=settings.provider_request_delay_seconds,
            quota_pause=settings.provider_quota_pause_seconds,
            max_quota_pause=settings.provider_quota_pause_max_seconds,
            source_app=settings.source_app,
        )
    if ingest is None:
        ingest = IngestClient(
            settings.ingest_base_url,
            settings.ingest_api_key,
            timeout=settings.ingest_timeout_seconds,
        )

    sync = SyncService(source, ingest, state_store, preferences, settings.tz, clock=clock)

    return Services(
        settings=settings,
        engine=engine,
        session_maker=session_maker,
        state_store=state_store,
        preferences=preferences,
        source=source,
        ingest=ingest,
        sync=sync,
    )


def get_services(request: Request) -> Services:
    """Dependency for FastAPI to get the service graph."""
    return request.app.state.services
