"""Date normalization and due-date arithmetic for Master cells."""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from dateutil.parser import parse as dateutil_parse
from dateutil.relativedelta import relativedelta

# Day zero of spreadsheet serial dates (Sheets and Excel's 1900 system).
SERIAL_EPOCH = date(1899, 12, 30)
DISPLAY_FORMAT = "%d-%m-%Y"
DEFAULT_INTERVAL_MONTHS = 3

# Day-first before month-first: "03/04/2024" reads as 3 April.
TEXT_FORMATS = (
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%m/%d/%Y",
)

_NUMERIC_TEXT = re.compile(r"^[+-]?\d+(\.\d+)?$")
# Two distinct defaults expose any component the generic parser had to invent.
_PROBE_DEFAULTS = (datetime(2001, 1, 1), datetime(2002, 2, 2))


def _to_utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def serial_to_date(serial: float) -> Optional[date]:
    """Convert a spreadsheet day-count into a calendar date, dropping time of day."""

    if not math.isfinite(serial):
        return None
    try:
        return SERIAL_EPOCH + timedelta(days=math.floor(serial))
    except OverflowError:
        return None


def _serial_value(value: Any) -> Optional[date]:
    try:
        serial = float(value)
    except (OverflowError, ValueError):
        return None
    return serial_to_date(serial)


def _parse_iso(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return _to_utc_date(datetime.fromisoformat(text))
    except ValueError:
        return None


def _parse_text_formats(text: str) -> Optional[date]:
    for fmt in TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_email_header(text: str) -> Optional[date]:
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if parsed is None:
        return None
    return _to_utc_date(parsed)


def _parse_generic(text: str) -> Optional[date]:
    results = []
    for default in _PROBE_DEFAULTS:
        try:
            results.append(dateutil_parse(text, default=default))
        except (ValueError, OverflowError, TypeError):
            return None
    first, second = results
    if first.date() != second.date():
        return None
    return _to_utc_date(first)


def normalize_date(value: Any) -> Optional[date]:
    """Turn any Master cell into a calendar date, or ``None`` when unparseable.

    Numbers are spreadsheet serials. Text is tried as ISO, then the explicit
    day-first and month-first patterns, then an RFC 2822 header date, then a
    generic parse that must not need to invent a day, month or year. Never
    raises.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_utc_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Decimal)):
        return _serial_value(value)

    text = str(value).strip()
    if not text:
        return None
    if _NUMERIC_TEXT.match(text):
        parsed = _serial_value(text)
        if parsed is not None:
            return parsed

    for parser in (_parse_iso, _parse_text_formats, _parse_email_header, _parse_generic):
        parsed = parser(text)
        if parsed is not None:
            return parsed
    return None


def add_months(start: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of a shorter month."""

    return start + relativedelta(months=months)


def due_date(last_service: Optional[date], interval_months: int = DEFAULT_INTERVAL_MONTHS) -> Optional[date]:
    """Next service date for a last-service date; ``None`` passes through."""

    if last_service is None:
        return None
    return add_months(last_service, interval_months)


def format_display(value: Optional[date]) -> str:
    """Render a date the way the Master and Reminders tables show it."""

    return value.strftime(DISPLAY_FORMAT) if value else ""


def format_iso(value: Optional[date]) -> str:
    return value.isoformat() if value else ""
