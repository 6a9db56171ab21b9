"""Sync orchestration: Master -> derived columns -> Reminders -> notifications."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from reminder_sync.core.config import SyncConfig
from reminder_sync.core.errors import SchemaError
from reminder_sync.core.models import CustomerRecord, SyncSummary
from reminder_sync.export.sinks import TableStore, build_store
from reminder_sync.ingestion.schema import SchemaMap, resolve_schema
from reminder_sync.notify.transport import build_transport
from reminder_sync.processing.reconcile import (
    derived_columns,
    notification_columns,
    presentation_table,
    reconcile,
    sorted_master_table,
)
from reminder_sync.processing.reminders import ReminderEngine, ReminderOutcome, Transport

logger = logging.getLogger(__name__)

# Data rows start under the header; store coordinates are 1-based.
FIRST_DATA_ROW = 2


def _write_columns(
    store: TableStore,
    sheet: str,
    schema: SchemaMap,
    columns: Dict[str, List[str]],
) -> None:
    """Overwrite only the named columns of the data rows, one column at a time."""

    for name, values in columns.items():
        index = schema.index(name)
        if index is None or not values:
            continue
        store.write_range(sheet, FIRST_DATA_ROW, index + 1, [[value] for value in values])
        logger.debug("Wrote %d values to %s column %s", len(values), sheet, schema.headers[index])


def status_log_row(
    timestamp: datetime,
    records: Sequence[CustomerRecord],
    outcome: ReminderOutcome,
) -> List[object]:
    return [
        timestamp.isoformat(timespec="seconds"),
        len(records),
        outcome.sent,
        outcome.failed,
        "; ".join(str(failure) for failure in outcome.failures),
    ]


def run_sync(
    config: SyncConfig,
    store: Optional[TableStore] = None,
    transport: Optional[Transport] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> SyncSummary:
    """Reconcile the Master table, regenerate Reminders and send due notices.

    Configuration, schema and read errors abort before anything is written.
    Individual send failures are collected in the summary; the notified-state
    columns are left untouched for those records so the next run retries them.
    """

    config.validate(storage=store is None, transport=transport is None)
    store = store or build_store(config)
    transport = transport or build_transport(config)
    today = today or date.today()
    now = now or datetime.now(timezone.utc)

    logger.info("Sync starting for %s (today=%s)", config.master_sheet, today.isoformat())
    try:
        header, rows = store.read_table(config.master_sheet)
        if not header or not any(str(label).strip() for label in header):
            raise SchemaError(f"{config.master_sheet} sheet is empty or missing headers")
        logger.info("Loaded %d rows from %s", len(rows), config.master_sheet)

        schema = resolve_schema(header)
        if schema.extended:
            store.write_range(config.master_sheet, 1, len(header) + 1, [schema.headers[len(header):]])
            logger.info("Extended %s headers to %d columns", config.master_sheet, len(schema.headers))

        records, by_name = reconcile(schema, rows, config.interval_months)
        _write_columns(store, config.master_sheet, schema, derived_columns(records))
        logger.info("Updated derived columns for %d records", len(records))

        engine = ReminderEngine(
            transport,
            today,
            advance_days=config.advance_days,
            offset_days=config.offset_days,
            status_policy=config.status_policy,
            sender_name=config.sender_name,
        )
        store.write_table(config.reminders_sheet, presentation_table(by_name, engine.tiers(records)))
        logger.info("Regenerated %s with %d rows", config.reminders_sheet, len(by_name))
        if config.master_sorted_sheet:
            store.write_table(config.master_sorted_sheet, sorted_master_table(schema, rows, records))
            logger.info("Regenerated %s", config.master_sorted_sheet)

        outcome = engine.run(records)
        _write_columns(store, config.master_sheet, schema, notification_columns(records))

        store.ensure_sheet(config.status_log_sheet)
        store.append_row(config.status_log_sheet, status_log_row(now, records, outcome))
        logger.info("Appended run entry to %s", config.status_log_sheet)
    except Exception:
        logger.exception("Sync aborted")
        raise

    summary = SyncSummary(
        processed=len(records),
        sent=outcome.sent,
        failed=outcome.failed,
        failures=list(outcome.failures),
        skipped=dict(outcome.skipped),
    )
    logger.info(
        "Sync complete: %d processed, %d sent, %d failed",
        summary.processed,
        summary.sent,
        summary.failed,
    )
    return summary
