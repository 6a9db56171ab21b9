"""Record reconciliation and the reminder state machine."""
from reminder_sync.processing.reconcile import (
    REMINDER_HEADERS,
    derived_columns,
    notification_columns,
    presentation_table,
    reconcile,
    reconcile_records,
    sort_by_name,
)
from reminder_sync.processing.reminders import (
    ReminderEngine,
    ReminderOutcome,
    apply_status_policy,
    classify,
)
from reminder_sync.processing.templates import render_message

__all__ = [
    "REMINDER_HEADERS",
    "ReminderEngine",
    "ReminderOutcome",
    "apply_status_policy",
    "classify",
    "derived_columns",
    "notification_columns",
    "presentation_table",
    "reconcile",
    "reconcile_records",
    "render_message",
    "sort_by_name",
]
