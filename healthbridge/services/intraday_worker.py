"""Frequent reconciliation of today's data."""

import logging

from healthbridge.services.errors import PermissionMissingError
from healthbridge.services.sync import DateOutcome, SyncService, WorkerResult, WorkerStatus

logger = logging.getLogger(__name__)


class IntradaySyncWorker:
    """Captures today from midnight up to now and uploads it if it changed.

    An empty capture is still hashed and uploaded once: "nothing yet today"
    is a state the ingest service should see. The last-run timestamp is
    written on every exit path.
    """

    name = "intraday"

    def __init__(self, sync: SyncService):
        self.sync = sync

    async def run(self) -> WorkerResult:
        started = self.sync.now()
        logger.info(f"Starting intraday sync at {started.isoformat()}")

        try:
            if not await self.sync.has_permission():
                logger.warning("Permissions missing")
                return WorkerResult(self.name, WorkerStatus.RETRY, error=PermissionMissingError.reason)

            report = await self.sync.sync_date(
                started.date(),
                self.sync.ingest.post_intraday,
                skip_empty=False,
                end=started,
            )
            if report.outcome == DateOutcome.FAILED:
                return WorkerResult(self.name, WorkerStatus.RETRY, [report], error=report.error)
            return WorkerResult(self.name, WorkerStatus.SUCCESS, [report])
        finally:
            try:
                await self.sync.preferences.set_last_intraday_run(self.sync.now())
            except Exception as e:
                logger.error(f"Failed to record last intraday run: {e}")
