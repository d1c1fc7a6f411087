"""Local key/value settings: device identity and liveness bookkeeping."""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthbridge.models.database import AppSetting

logger = logging.getLogger(__name__)

KEY_DEVICE_ID = "device_id"
KEY_LAST_INTRADAY_RUN = "last_intraday_run"


class PreferencesStore:
    """Reads and writes rows of the ``app_settings`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def get(self, key: str) -> Optional[str]:
        async with self.session_maker() as session:
            record = await session.get(AppSetting, key)
            return record.value if record else None

    async def set(self, key: str, value: str) -> None:
        stmt = insert(AppSetting.__table__).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(index_elements=["key"], set_={"value": stmt.excluded.value})
        async with self.session_maker() as session:
            await session.execute(stmt)
            await session.commit()

    async def get_device_id(self) -> str:
        """Return the stable device id, generating and persisting it on first use."""
        existing = await self.get(KEY_DEVICE_ID)
        if existing:
            return existing

        # INSERT OR IGNORE so two first-time callers agree on one id
        stmt = insert(AppSetting.__table__).values(key=KEY_DEVICE_ID, value=str(uuid.uuid4()))
        stmt = stmt.on_conflict_do_nothing(index_elements=["key"])
        async with self.session_maker() as session:
            await session.execute(stmt)
            await session.commit()

        device_id = await self.get(KEY_DEVICE_ID)
        logger.info(f"Generated device id {device_id}")
        return device_id

    async def set_last_intraday_run(self, when: datetime) -> None:
        await self.set(KEY_LAST_INTRADAY_RUN, when.isoformat())

    async def get_last_intraday_run(self) -> Optional[datetime]:
        value = await self.get(KEY_LAST_INTRADAY_RUN)
        return datetime.fromisoformat(value) if value else None
