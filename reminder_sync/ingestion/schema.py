"""Resolve Master header labels into canonical field positions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Priority order matters: a column claimed by an earlier field is not
# available to a later one.
DEFAULT_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "customer name", "full name"),
    "plate": ("plate number", "plate", "plate_no", "veh. reg. no.", "vehicle"),
    "email": ("email", "email address", "email add."),
    "phone": ("phone", "phone number", "mobile"),
    "last_service": ("last service date", "lastservicedate", "last visit", "last visit date"),
    "next_reminder": ("next reminder date", "nextreminderdate", "next visit", "next visit date"),
    "contact_flag": ("manual contact", "manual_contact", "manualcontact"),
    "last_notified": ("last email sent", "last notified", "last notified date"),
    "last_notified_tier": ("email type", "last notified tier", "last email type"),
    "subscription": ("subscription", "subscribed"),
    "status": ("status",),
}

# Columns the sync writes to; appended to the header when absent.
DERIVED_HEADERS: Dict[str, str] = {
    "next_reminder": "Next Reminder Date",
    "contact_flag": "Manual Contact",
    "last_notified": "Last Email Sent",
    "last_notified_tier": "Email Type",
}


@dataclass
class SchemaMap:
    """Canonical field name to zero-based column index, resolved once per run."""

    headers: List[str]
    columns: Dict[str, int] = field(default_factory=dict)
    appended: List[str] = field(default_factory=list)

    @property
    def extended(self) -> bool:
        """True when the header row grew and must be persisted before data writes."""

        return bool(self.appended)

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def index(self, name: str) -> Optional[int]:
        return self.columns.get(name)

    def value(self, row: Sequence[Any], name: str) -> Any:
        """Return the cell for ``name``; missing fields and short rows read as ``""``."""

        idx = self.columns.get(name)
        if idx is None or idx >= len(row):
            return ""
        cell = row[idx]
        return "" if cell is None else cell

    def text(self, row: Sequence[Any], name: str) -> str:
        return str(self.value(row, name)).strip()


def _normalize_header(label: Any) -> str:
    return str(label if label is not None else "").strip().lower()


def resolve_schema(
    headers: Iterable[Any],
    synonyms: Mapping[str, Sequence[str]] = DEFAULT_SYNONYMS,
    derived: Mapping[str, str] = DERIVED_HEADERS,
) -> SchemaMap:
    """Map a header row onto canonical fields.

    Matching is case-insensitive and exact. For each field the synonyms are
    tried in order and the first unclaimed header equal to a synonym wins.
    Fields in ``derived`` that stay unresolved get new trailing columns, so the
    positions of already-resolved fields never move.
    """

    header_row = [str(label if label is not None else "").strip() for label in headers]
    lowered = [_normalize_header(label) for label in header_row]
    columns: Dict[str, int] = {}
    claimed: set[int] = set()

    for name, variants in synonyms.items():
        for variant in variants:
            target = variant.lower()
            match = next(
                (i for i, label in enumerate(lowered) if label == target and i not in claimed),
                None,
            )
            if match is not None:
                columns[name] = match
                claimed.add(match)
                break

    schema = SchemaMap(headers=header_row, columns=columns)
    for name, label in derived.items():
        if name in columns:
            continue
        schema.columns[name] = len(schema.headers)
        schema.headers.append(label)
        schema.appended.append(name)

    if "name" not in columns and "last_service" not in columns:
        logger.warning(
            "Neither a name nor a last-service column was found in headers %s; "
            "records will have no identity or due date",
            header_row,
        )
    if schema.extended:
        logger.info("Appending missing columns: %s", ", ".join(derived[name] for name in schema.appended))
    logger.debug("Resolved schema: %s", schema.columns)
    return schema
