"""Reading Master tables: header resolution and date normalization."""
from reminder_sync.ingestion.dates import (
    add_months,
    due_date,
    format_display,
    format_iso,
    normalize_date,
    serial_to_date,
)
from reminder_sync.ingestion.schema import DEFAULT_SYNONYMS, DERIVED_HEADERS, SchemaMap, resolve_schema

__all__ = [
    "DEFAULT_SYNONYMS",
    "DERIVED_HEADERS",
    "SchemaMap",
    "add_months",
    "due_date",
    "format_display",
    "format_iso",
    "normalize_date",
    "resolve_schema",
    "serial_to_date",
]
