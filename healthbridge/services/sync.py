"""Sync orchestration - per-date reconciliation against the ingest service."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from healthbridge.schemas.payloads import IngestPayload, Source
from healthbridge.services.errors import ServerRejectedError, classify
from healthbridge.services.hasher import compute_hash
from healthbridge.services.health_source import HealthDataSource
from healthbridge.services.ingest import IngestClient, IngestResult
from healthbridge.services.preferences import PreferencesStore
from healthbridge.services.state_store import SyncState, SyncStateStore

logger = logging.getLogger(__name__)

PostFn = Callable[[IngestPayload], Awaitable[IngestResult]]


class DateOutcome(str, Enum):
    UPLOADED = "uploaded"
    UNCHANGED = "unchanged"
    SKIPPED_EMPTY = "skipped_empty"
    FAILED = "failed"


class WorkerStatus(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"


@dataclass
class DateReport:
    date: str
    outcome: DateOutcome
    data_hash: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "outcome": self.outcome.value,
            "data_hash": self.data_hash,
            "error": self.error,
        }


@dataclass
class WorkerResult:
    """What a worker run reports back to its trigger."""
    worker: str
    status: WorkerStatus
    dates: list[DateReport] = field(default_factory=list)
    error: Optional[str] = None

    def count(self, outcome: DateOutcome) -> int:
        return sum(1 for report in self.dates if report.outcome == outcome)

    def to_dict(self) -> dict[str, Any]:
        return {
            "worker": self.worker,
            "status": self.status.value,
            "error": self.error,
            "counts": {o.value: self.count(o) for o in DateOutcome},
            "dates": [report.to_dict() for report in self.dates],
        }


def day_bounds(target_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` of a calendar date in the given zone."""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


class SyncService:
    """Runs the capture -> hash -> dedup -> upload -> record cycle for one date.

    Shared by every worker; the workers only differ in which dates they
    visit, which endpoint they post to and whether an empty capture is
    skipped.
    """

    def __init__(
        self,
        source: HealthDataSource,
        ingest: IngestClient,
        store: SyncStateStore,
        preferences: PreferencesStore,
        tz: str,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.ingest = ingest
        self.store = store
        self.preferences = preferences
        self.tz = ZoneInfo(tz)
        self._clock = clock

    def now(self) -> datetime:
        """Current time, aware, in the configured zone."""
        if self._clock is not None:
            return self._clock().astimezone(self.tz)
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def _timestamp(self) -> datetime:
        """Naive UTC timestamp for persisted state."""
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)

    async def has_permission(self) -> bool:
        return await self.source.has_permission()

    async def build_payload(self, target_date: date, start: datetime, end: datetime) -> IngestPayload:
        """Capture a snapshot for the interval and wrap it in a payload."""
        snapshot = await self.source.capture_snapshot(start, end)
        device_id = await self.preferences.get_device_id()
        return IngestPayload.build(
            target_date,
            snapshot,
            Source(
                source_app=self.source.source_app,
                device_id=device_id,
                collected_at=self.now(),
            ),
        )

    async def sync_date(
        self,
        target_date: date,
        post: PostFn,
        skip_empty: bool = True,
        end: Optional[datetime] = None,
    ) -> DateReport:
        """
        Reconcile one date with the ingest service.

        Every error is caught here and recorded on the date's state; nothing
        propagates to sibling dates.

        Args:
            target_date: Local calendar date
            post: IngestClient method to upload with
            skip_empty: Leave state untouched when the capture has no data at all
            end: Override the interval end (intraday captures up to "now")
        """
        date_key = target_date.isoformat()
        start, day_end = day_bounds(target_date, self.tz)
        data_hash: Optional[str] = None

        try:
            prior = await self.store.get(date_key)
            payload = await self.build_payload(target_date, start, end or day_end)

            if skip_empty and payload.snapshot.is_empty():
                logger.warning(f"Skipping {date_key} - no data available yet")
                return DateReport(date_key, DateOutcome.SKIPPED_EMPTY)

            data_hash = compute_hash(payload)
            logger.debug(f"Computed hash for {date_key}: {data_hash}. Stored: {prior.data_hash if prior else None}")

            if prior is not None and prior.is_synced and prior.data_hash == data_hash:
                logger.info(f"Data unchanged for {date_key}, skipping upload")
                return DateReport(date_key, DateOutcome.UNCHANGED, data_hash)

            result = await post(payload)
            if not result.success:
                raise ServerRejectedError(result.status_code, result.error_body)

            synced_at = self._timestamp()
            await self.store.update(
                date_key,
                lambda state: (state or SyncState(date=date_key)).succeeded(data_hash, synced_at),
            )
            logger.info(f"Sync successful for {date_key}")
            return DateReport(date_key, DateOutcome.UPLOADED, data_hash)

        except Exception as e:
            reason = classify(e)
            logger.error(f"Sync failed for {date_key}: {reason}")
            attempted_at = self._timestamp()
            try:
                state = await self.store.update(
                    date_key,
                    lambda state: (state or SyncState(date=date_key)).failed(reason, attempted_at, data_hash),
                )
                logger.info(f"{date_key} has failed {state.attempt_count} consecutive time(s)")
            except Exception as db_err:
                logger.error(f"Failed to record error state for {date_key}: {db_err}")
            return DateReport(date_key, DateOutcome.FAILED, data_hash, reason)
