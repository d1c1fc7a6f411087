"""Rolling-window reconciliation of past days."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta

from healthbridge.services.errors import PermissionMissingError
from healthbridge.services.sync import DateOutcome, DateReport, SyncService, WorkerResult, WorkerStatus

logger = logging.getLogger(__name__)


class DateRangeWorker(ABC):
    """Visits a list of past dates in order, one date at a time."""

    name = "date_range"

    def __init__(self, sync: SyncService, delay_seconds: float = 0.0):
        self.sync = sync
        self.delay_seconds = delay_seconds

    @abstractmethod
    def dates(self) -> list[date]:
        """Dates to visit, in processing order."""

    def on_date_done(self, report: DateReport) -> None:
        pass

    async def run(self) -> WorkerResult:
        dates = self.dates()
        logger.info(f"Starting {self.name} sync over {len(dates)} dates")

        if not await self.sync.has_permission():
            logger.error(f"Permissions missing, aborting {self.name} sync")
            return WorkerResult(self.name, WorkerStatus.FAILURE, error=PermissionMissingError.reason)

        result = WorkerResult(self.name, WorkerStatus.SUCCESS)
        for i, target_date in enumerate(dates):
            report = await self.sync.sync_date(target_date, self.sync.ingest.post_daily, skip_empty=True)
            result.dates.append(report)
            self.on_date_done(report)

            if self.delay_seconds and i < len(dates) - 1:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            f"{self.name} sync complete: {result.count(DateOutcome.UPLOADED)} uploaded, "
            f"{result.count(DateOutcome.UNCHANGED)} unchanged, "
            f"{result.count(DateOutcome.SKIPPED_EMPTY)} empty, "
            f"{result.count(DateOutcome.FAILED)} failed"
        )
        return result


class DailySyncWorker(DateRangeWorker):
    """Reconciles the ``window_days`` days before today, newest first.

    Today is never part of the window; the intraday worker owns it.
    """

    name = "daily"

    def __init__(self, sync: SyncService, window_days: int = 14):
        super().__init__(sync)
        if window_days < 1:
            raise ValueError("window_days must be at least 1")
        self.window_days = window_days

    def dates(self) -> list[date]:
        today = self.sync.today()
        return [today - timedelta(days=i) for i in range(1, self.window_days + 1)]
