"""Manually triggered re-processing of an explicit date range."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from healthbridge.services.daily_worker import DateRangeWorker
from healthbridge.services.sync import DateOutcome, DateReport, SyncService

logger = logging.getLogger(__name__)


@dataclass
class BackfillProgress:
    start_date: date
    end_date: date
    total_days: int
    days_completed: int = 0
    days_failed: int = 0
    current_date: Optional[date] = None
    started_at: Optional[datetime] = None
    is_running: bool = False


class BackfillWorker(DateRangeWorker):
    """Runs the daily algorithm over ``[start_date, end_date]`` (both inclusive),
    oldest first, pausing between dates to respect provider rate limits."""

    name = "backfill"

    def __init__(self, sync: SyncService, start_date: date, end_date: date, delay_seconds: float = 2.0):
        if start_date > end_date:
            raise ValueError("start_date must be before or equal to end_date")
        super().__init__(sync, delay_seconds)
        self.start_date = start_date
        self.end_date = end_date
        self.progress = BackfillProgress(
            start_date=start_date,
            end_date=end_date,
            total_days=(end_date - start_date).days + 1,
        )

    def dates(self) -> list[date]:
        return [self.start_date + timedelta(days=i) for i in range(self.progress.total_days)]

    def on_date_done(self, report: DateReport) -> None:
        self.progress.current_date = date.fromisoformat(report.date)
        if report.outcome == DateOutcome.FAILED:
            self.progress.days_failed += 1
        else:
            self.progress.days_completed += 1
        done = self.progress.days_completed + self.progress.days_failed
        logger.info(f"Backfill {report.date}: {done}/{self.progress.total_days}")

    async def run(self):
        self.progress.is_running = True
        self.progress.started_at = datetime.utcnow()
        try:
            return await super().run()
        finally:
            self.progress.is_running = False
