"""Build customer records from Master rows and project them back into tables."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from reminder_sync.core.models import ContactStatus, CustomerRecord, Tier
from reminder_sync.ingestion.dates import (
    DEFAULT_INTERVAL_MONTHS,
    due_date,
    format_display,
    format_iso,
    normalize_date,
)
from reminder_sync.ingestion.schema import SchemaMap

logger = logging.getLogger(__name__)

MISSING_CONTACT_FLAG = "MISSING CONTACT"

REMINDER_HEADERS = [
    "Name",
    "Plate Number",
    "Email",
    "Phone",
    "Last Service Date",
    "Next Reminder Date",
    "Manual Contact",
    "Status",
]

# Older runs wrote the advance tier under a longer label.
_TIER_ALIASES = {
    "ADVANCE_7DAY": Tier.ADVANCE,
    "DUE TODAY": Tier.DUE_TODAY,
    "NOT DUE": Tier.NOT_DUE,
}


def parse_tier(value: Any) -> Optional[Tier]:
    """Read a tier label from a table cell; unknown labels yield ``None``."""

    text = str(value or "").strip().upper()
    if not text:
        return None
    if text in _TIER_ALIASES:
        return _TIER_ALIASES[text]
    try:
        return Tier(text.replace(" ", "_").replace("-", "_"))
    except ValueError:
        return None


def contact_status(email: str, phone: str) -> ContactStatus:
    return ContactStatus.MISSING if not email and not phone else ContactStatus.COMPLETE


def build_record(
    schema: SchemaMap,
    row: Sequence[Any],
    position: int,
    interval_months: int = DEFAULT_INTERVAL_MONTHS,
) -> CustomerRecord:
    """Create one record, recomputing every derived field from the raw cells."""

    email = schema.text(row, "email")
    phone = schema.text(row, "phone")
    last_raw = schema.value(row, "last_service")
    last_date = normalize_date(last_raw)
    if last_date is None and str(last_raw).strip():
        logger.debug("Row %d: could not parse last service date %r", position, last_raw)

    return CustomerRecord(
        source_position=position,
        name=schema.text(row, "name"),
        plate=schema.text(row, "plate"),
        email=email,
        phone=phone,
        last_service_raw=last_raw,
        last_service_date=last_date,
        next_reminder_date=due_date(last_date, interval_months),
        contact_status=contact_status(email, phone),
        last_notified_date=normalize_date(schema.value(row, "last_notified")),
        last_notified_tier=parse_tier(schema.value(row, "last_notified_tier")),
        subscription=schema.text(row, "subscription"),
        manual_status=schema.text(row, "status"),
    )


def reconcile_records(
    schema: SchemaMap,
    rows: Iterable[Sequence[Any]],
    interval_months: int = DEFAULT_INTERVAL_MONTHS,
) -> List[CustomerRecord]:
    """Return one record per data row, in source order."""

    records = [
        build_record(schema, row, position, interval_months)
        for position, row in enumerate(rows)
    ]
    undated = sum(1 for record in records if record.next_reminder_date is None)
    missing = sum(1 for record in records if record.contact_status is ContactStatus.MISSING)
    logger.info(
        "Reconciled %d records (%d without a due date, %d missing contact details)",
        len(records),
        undated,
        missing,
    )
    return records


def sort_by_name(records: Iterable[CustomerRecord]) -> List[CustomerRecord]:
    """Case-insensitive name order; ties keep their source order."""

    return sorted(records, key=lambda record: record.name.casefold())


def reconcile(
    schema: SchemaMap,
    rows: Iterable[Sequence[Any]],
    interval_months: int = DEFAULT_INTERVAL_MONTHS,
) -> Tuple[List[CustomerRecord], List[CustomerRecord]]:
    """Return the records in source order and an independently name-sorted copy."""

    records = reconcile_records(schema, rows, interval_months)
    return records, sort_by_name(records)


def contact_flag(record: CustomerRecord) -> str:
    return MISSING_CONTACT_FLAG if record.contact_status is ContactStatus.MISSING else ""


def derived_columns(records: Sequence[CustomerRecord]) -> Dict[str, List[str]]:
    """Cell values for the recomputed Master columns, in source order."""

    return {
        "next_reminder": [format_display(record.next_reminder_date) for record in records],
        "contact_flag": [contact_flag(record) for record in records],
    }


def notification_columns(records: Sequence[CustomerRecord]) -> Dict[str, List[str]]:
    """Cell values for the persisted de-duplication state, in source order."""

    return {
        "last_notified": [format_iso(record.last_notified_date) for record in records],
        "last_notified_tier": [
            record.last_notified_tier.value if record.last_notified_tier else ""
            for record in records
        ],
    }


def _last_service_display(record: CustomerRecord) -> str:
    if record.last_service_date:
        return format_display(record.last_service_date)
    return str(record.last_service_raw or "").strip()


def record_to_reminder_row(record: CustomerRecord, tier: Optional[Tier] = None) -> List[str]:
    return [
        record.name,
        record.plate,
        record.email,
        record.phone,
        _last_service_display(record),
        format_display(record.next_reminder_date),
        contact_flag(record),
        tier.value if tier else "",
    ]


def presentation_table(
    records: Iterable[CustomerRecord],
    tiers: Optional[Mapping[int, Optional[Tier]]] = None,
) -> List[List[str]]:
    """Header plus one row per record, sorted by name for the Reminders sheet."""

    tiers = tiers or {}
    rows = [
        record_to_reminder_row(record, tiers.get(record.source_position))
        for record in sort_by_name(records)
    ]
    return [list(REMINDER_HEADERS)] + rows


def sorted_master_table(
    schema: SchemaMap,
    rows: Sequence[Sequence[Any]],
    records: Iterable[CustomerRecord],
) -> List[List[Any]]:
    """Full Master rows with recomputed columns filled in, sorted by name.

    Cells outside the derived columns are copied unchanged. ``rows`` must be
    the data rows the records were built from.
    """

    width = len(schema.headers)
    derived = {
        "next_reminder": lambda record: format_display(record.next_reminder_date),
        "contact_flag": contact_flag,
    }
    table: List[List[Any]] = [list(schema.headers)]
    for record in sort_by_name(records):
        row = list(rows[record.source_position])
        row.extend([""] * (width - len(row)))
        for name, project in derived.items():
            index = schema.index(name)
            if index is not None:
                row[index] = project(record)
        table.append(row)
    return table
