from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
)
from healthbridge.core.database import Base


class SyncStateRecord(Base):
    """Per-calendar-date sync status (one row per local date)."""

    __tablename__ = "sync_state"

    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    data_hash = Column(String, nullable=False, default="")
    last_synced_at = Column(DateTime, nullable=True)
    last_attempted_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    attempt_count = Column(Integer, nullable=False, default=0)


class AppSetting(Base):
    """Local key/value settings (device id, liveness timestamps)."""

    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
