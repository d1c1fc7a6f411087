"""Sync log model for tracking worker runs."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON

from healthbridge.core.database import Base


class SyncLog(Base):
    """Log of worker runs."""

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    worker = Column(String, nullable=False, index=True)  # "daily", "intraday", "backfill"
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    status = Column(String, nullable=False)  # "success", "retry", "failure"
    details = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
