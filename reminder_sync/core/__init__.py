"""Core building blocks for the reminder_sync package."""
from reminder_sync.core.config import SyncConfig
from reminder_sync.core.errors import (
    ConfigurationError,
    DeliveryFailure,
    PersistenceFailure,
    ReminderSyncError,
    SchemaError,
)
from reminder_sync.core.logging import configure_logging
from reminder_sync.core.models import ContactStatus, CustomerRecord, SendFailure, SyncSummary, Tier

__all__ = [
    "ConfigurationError",
    "ContactStatus",
    "CustomerRecord",
    "DeliveryFailure",
    "PersistenceFailure",
    "ReminderSyncError",
    "SchemaError",
    "SendFailure",
    "SyncConfig",
    "SyncSummary",
    "Tier",
    "configure_logging",
]
