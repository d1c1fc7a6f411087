# Database models
from healthbridge.models.database import (
    SyncStateRecord,
    AppSetting,
)
from healthbridge.models.sync_log import SyncLog

__all__ = [
    "SyncStateRecord",
    "AppSetting",
    "SyncLog",
]
