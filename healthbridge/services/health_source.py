"""Health data provider capability consumed by the sync workers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, Optional

from healthbridge.schemas.payloads import CaptureFailure, RawSnapshot
from healthbridge.services.errors import ProviderCaptureFailedError, ProviderQuotaExceededError

logger = logging.getLogger(__name__)


class HealthDataSource(ABC):
    """Base class for provider bindings.

    A binding lists its ``record_types`` and implements permission checks and
    ``read_records``. The capture loop lives here: record types are read one
    at a time with a small delay in between, a failing type is recorded and
    skipped, and a quota signal pauses the loop (doubling up to a ceiling)
    before the next type is read.
    """

    source_app: str = "unknown"
    record_types: tuple[str, ...] = ()

    def __init__(
        self,
        request_delay: float = 0.03,
        quota_pause: float = 1.0,
        max_quota_pause: float = 30.0,
        source_app: Optional[str] = None,
    ):
        if source_app:
            self.source_app = source_app
        self.request_delay = request_delay
        self.quota_pause = quota_pause
        self.max_quota_pause = max_quota_pause

    def permissions(self) -> set[str]:
        """The capability set needed to read every record type."""
        return {f"read:{record_type}" for record_type in self.record_types}

    async def has_permission(self, capabilities: Optional[Iterable[str]] = None) -> bool:
        required = set(capabilities) if capabilities is not None else self.permissions()
        try:
            granted = await self.granted_permissions()
        except Exception as e:
            logger.error(f"Error checking permissions: {e}")
            return False
        return required <= granted

    @abstractmethod
    async def granted_permissions(self) -> set[str]:
        """Capabilities the provider currently grants."""

    @abstractmethod
    async def request_permission(self, capabilities: Optional[Iterable[str]] = None) -> bool:
        """Ask the provider for capabilities; returns whether they are now granted."""

    @abstractmethod
    async def read_records(self, record_type: str, start: datetime, end: datetime) -> list[Any]:
        """Read one record type for ``[start, end)``.

        Raise ProviderQuotaExceededError on a rate-limit/quota signal; any
        other exception marks just this record type as failed.
        """

    async def capture_snapshot(self, start: datetime, end: datetime) -> RawSnapshot:
        """Capture every record type for ``[start, end)`` into a raw snapshot.

        Raises:
            ProviderCaptureFailedError: if every record type failed.
        """
        records: dict[str, list[Any]] = {}
        failures: list[CaptureFailure] = []
        pause = self.quota_pause

        for record_type in self.record_types:
            await asyncio.sleep(self.request_delay)
            try:
                result = await self.read_records(record_type, start, end)
            except ProviderQuotaExceededError as e:
                logger.warning(f"Quota exceeded for {record_type}, pausing {pause}s")
                failures.append(CaptureFailure(record_type=record_type, reason=str(e) or e.reason, quota_exceeded=True))
                await asyncio.sleep(pause)
                pause = min(pause * 2, self.max_quota_pause)
                continue
            except Exception as e:
                logger.warning(f"Failed to read {record_type}: {e}")
                failures.append(CaptureFailure(record_type=record_type, reason=str(e) or type(e).__name__))
                continue

            pause = self.quota_pause
            if result:
                records[record_type] = result

        if failures and len(failures) == len(self.record_types):
            raise ProviderCaptureFailedError(failures)

        if failures:
            logger.info(f"Captured {len(records)} record types, {len(failures)} failed: "
                        f"{[f.record_type for f in failures]}")
        else:
            logger.debug(f"Captured {len(records)} non-empty record types")

        return RawSnapshot.from_records(records, failures)
