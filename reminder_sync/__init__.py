"""Customer service-reminder sync for spreadsheet-based registries."""
from reminder_sync.core import (
    ConfigurationError,
    ContactStatus,
    CustomerRecord,
    DeliveryFailure,
    PersistenceFailure,
    ReminderSyncError,
    SchemaError,
    SendFailure,
    SyncConfig,
    SyncSummary,
    Tier,
    configure_logging,
)
from reminder_sync.ingestion import SchemaMap, due_date, normalize_date, resolve_schema
from reminder_sync.pipeline import run_sync
from reminder_sync.processing import ReminderEngine, classify, reconcile

__all__ = [
    "ConfigurationError",
    "ContactStatus",
    "CustomerRecord",
    "DeliveryFailure",
    "PersistenceFailure",
    "ReminderEngine",
    "ReminderSyncError",
    "SchemaError",
    "SchemaMap",
    "SendFailure",
    "SyncConfig",
    "SyncSummary",
    "Tier",
    "classify",
    "configure_logging",
    "due_date",
    "normalize_date",
    "reconcile",
    "resolve_schema",
    "run_sync",
]
