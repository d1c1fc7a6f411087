"""Persisted per-date sync state."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthbridge.models.database import SyncStateRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncState:
    """Sync status of one calendar date.

    ``attempt_count`` counts consecutive failures since the last success;
    ``last_synced_at`` is None until an upload has succeeded.
    """

    date: str
    data_hash: str = ""
    last_synced_at: Optional[datetime] = None
    last_attempted_at: Optional[datetime] = None
    last_error: Optional[str] = None
    attempt_count: int = 0

    @property
    def is_synced(self) -> bool:
        return self.last_synced_at is not None and self.attempt_count == 0

    def succeeded(self, data_hash: str, now: datetime) -> "SyncState":
        return replace(
            self,
            data_hash=data_hash,
            last_synced_at=now,
            last_attempted_at=now,
            last_error=None,
            attempt_count=0,
        )

    def failed(self, error: str, now: datetime, data_hash: Optional[str] = None) -> "SyncState":
        return replace(
            self,
            data_hash=self.data_hash if data_hash is None else data_hash,
            last_attempted_at=now,
            last_error=error,
            attempt_count=self.attempt_count + 1,
        )

    @classmethod
    def from_record(cls, record: SyncStateRecord) -> "SyncState":
        return cls(
            date=record.date,
            data_hash=record.data_hash,
            last_synced_at=record.last_synced_at,
            last_attempted_at=record.last_attempted_at,
            last_error=record.last_error,
            attempt_count=record.attempt_count,
        )

    def to_row(self) -> dict:
        return {
            "date": self.date,
            "data_hash": self.data_hash,
            "last_synced_at": self.last_synced_at,
            "last_attempted_at": self.last_attempted_at,
            "last_error": self.last_error,
            "attempt_count": self.attempt_count,
        }


class SyncStateStore:
    """Map from calendar date to SyncState, backed by the ``sync_state`` table.

    Writes for the same date are serialized by a per-date lock; writes for
    different dates never wait on each other. Every write replaces the full row.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _date_lock(self, date_key: str):
        """Hold the lock for one date; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.get(date_key)
        if lock is None:
            lock = self._locks[date_key] = asyncio.Lock()
        self._lock_users[date_key] = self._lock_users.get(date_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[date_key] -= 1
            if not self._lock_users[date_key]:
                del self._lock_users[date_key]
                del self._locks[date_key]

    async def get(self, date_key: str) -> Optional[SyncState]:
        async with self.session_maker() as session:
            record = await session.get(SyncStateRecord, date_key)
            return SyncState.from_record(record) if record else None

    async def _write(self, state: SyncState) -> None:
        data = state.to_row()
        stmt = insert(SyncStateRecord.__table__).values(**data).on_conflict_do_update(
            index_elements=["date"],
            set_={k: v for k, v in data.items() if k != "date"},
        )
        async with self.session_maker() as session:
            await session.execute(stmt)
            await session.commit()

    async def upsert(self, state: SyncState) -> None:
        """Replace the row for ``state.date``."""
        async with self._date_lock(state.date):
            await self._write(state)

    async def update(
        self,
        date_key: str,
        mutate: Callable[[Optional[SyncState]], SyncState],
    ) -> SyncState:
        """Atomically read the row for a date, apply ``mutate`` and write the result."""
        async with self._date_lock(date_key):
            prior = await self.get(date_key)
            new_state = mutate(prior)
            if new_state.date != date_key:
                raise ValueError(f"mutate returned state for {new_state.date}, expected {date_key}")
            await self._write(new_state)
            return new_state

    async def list_all(self) -> list[SyncState]:
        async with self.session_maker() as session:
            result = await session.execute(select(SyncStateRecord).order_by(SyncStateRecord.date.desc()))
            return [SyncState.from_record(r) for r in result.scalars().all()]

    async def clear_all(self) -> int:
        """Remove every row, forcing the next runs to treat all dates as changed."""
        async with self.session_maker() as session:
            result = await session.execute(delete(SyncStateRecord))
            await session.commit()
        logger.warning(f"Wiped sync state ({result.rowcount} rows)")
        return result.rowcount
