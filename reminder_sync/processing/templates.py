"""Message templates for each reminder tier."""
from datetime import date
from typing import Tuple

from reminder_sync.core.models import CustomerRecord, Tier
from reminder_sync.ingestion.dates import format_display


def _details(record: CustomerRecord, due_label: str) -> str:
    last_service = format_display(record.last_service_date) or "not recorded"
    due = format_display(record.next_reminder_date) or "not recorded"
    return (
        "Service Details:\n"
        f"- Last Service: {last_service}\n"
        f"- {due_label}: {due}\n\n"
    )


def _vehicle(record: CustomerRecord) -> str:
    return f"your vehicle ({record.plate})" if record.plate else "your vehicle"


def render_message(
    record: CustomerRecord,
    tier: Tier,
    today: date,
    sender_name: str = "Service Team",
) -> Tuple[str, str]:
    """Return ``(subject, body)`` for a record in a notifying tier."""

    name = record.name or "Customer"
    greeting = f"Dear {name},\n\n"
    closing = f"Best regards,\n{sender_name}"
    vehicle = _vehicle(record)

    if tier is Tier.ADVANCE:
        days = (record.next_reminder_date - today).days if record.next_reminder_date else 0
        subject = f"Upcoming Service Reminder - {name}"
        body = (
            greeting
            + f"This is a friendly advance reminder that {vehicle} is due for service in {days} day(s).\n\n"
            + _details(record, "Next Service Due")
            + "We recommend booking your appointment early to ensure availability.\n\n"
            + closing
        )
    elif tier is Tier.DUE_TODAY:
        subject = f"Service Due Today - {name}"
        body = (
            greeting
            + f"{vehicle[0].upper()}{vehicle[1:]} is due for service TODAY.\n\n"
            + _details(record, "Service Due")
            + "Please contact us to schedule your appointment as soon as possible.\n\n"
            + closing
        )
    elif tier is Tier.OVERDUE:
        subject = f"Overdue Service Notice - {name}"
        body = (
            greeting
            + f"Our records show {vehicle} has missed its scheduled service.\n\n"
            + _details(record, "Service Was Due")
            + "Regular maintenance keeps your vehicle safe and reliable. "
            + "Please contact us to schedule your overdue service.\n\n"
            + closing
        )
    else:
        raise ValueError(f"No message template for tier {tier.value}")
    return subject, body
