"""Tiered reminder classification and the de-duplicated send loop."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol

from reminder_sync.core.errors import DeliveryFailure
from reminder_sync.core.models import CustomerRecord, SendFailure, Tier
from reminder_sync.processing.reconcile import parse_tier
from reminder_sync.processing.templates import render_message

logger = logging.getLogger(__name__)

DEFAULT_ADVANCE_DAYS = 7

OPTED_OUT_VALUES = {"NOT SUBSCRIBED", "UNSUBSCRIBED", "OPTED OUT", "OPT-OUT", "OPT OUT"}

_URGENCY = {Tier.NOT_DUE: 0, Tier.ADVANCE: 1, Tier.DUE_TODAY: 2, Tier.OVERDUE: 3}


class Transport(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


def classify(
    next_reminder: Optional[date],
    today: date,
    advance_days: int = DEFAULT_ADVANCE_DAYS,
    offset_days: int = 0,
) -> Optional[Tier]:
    """Tier for a due date relative to ``today``; ``None`` when there is no date.

    The tier always follows the real due date. ``offset_days`` only widens the
    advance window so the first notice can go out earlier.
    """

    if next_reminder is None:
        return None
    days_until_due = (next_reminder - today).days
    if days_until_due < 0:
        return Tier.OVERDUE
    if days_until_due == 0:
        return Tier.DUE_TODAY
    if days_until_due <= advance_days + offset_days:
        return Tier.ADVANCE
    return Tier.NOT_DUE


def apply_status_policy(date_tier: Optional[Tier], manual_status: str, policy: str = "ignore") -> Optional[Tier]:
    """Combine the date-based tier with a manually entered status.

    ``ignore`` keeps the date tier. ``supplement`` only escalates to a manual
    tier that is more urgent. ``override`` lets any recognised manual tier win.
    """

    if policy == "ignore":
        return date_tier
    manual_tier = parse_tier(manual_status)
    if manual_tier is None:
        return date_tier
    if policy == "override":
        return manual_tier
    if policy == "supplement":
        if date_tier is None or _URGENCY[manual_tier] > _URGENCY[date_tier]:
            return manual_tier
        return date_tier
    raise ValueError(f"Unknown status policy: {policy}")


def is_opted_out(subscription: str) -> bool:
    return subscription.strip().upper() in OPTED_OUT_VALUES


def already_notified(record: CustomerRecord, tier: Tier, today: date) -> bool:
    """Same tier already delivered today; a different tier may still go out."""

    return record.last_notified_date == today and record.last_notified_tier is tier


@dataclass
class ReminderOutcome:
    """Counters and failures collected while walking the records once."""

    sent: int = 0
    failures: List[SendFailure] = field(default_factory=list)
    skipped: Counter = field(default_factory=Counter)

    @property
    def failed(self) -> int:
        return len(self.failures)


class ReminderEngine:
    """Evaluate each record's tier and drive at most one send per record."""

    def __init__(
        self,
        transport: Transport,
        today: date,
        advance_days: int = DEFAULT_ADVANCE_DAYS,
        offset_days: int = 0,
        status_policy: str = "ignore",
        sender_name: str = "Service Team",
    ) -> None:
        self.transport = transport
        self.today = today
        self.advance_days = advance_days
        self.offset_days = offset_days
        self.status_policy = status_policy
        self.sender_name = sender_name

    def tier_for(self, record: CustomerRecord) -> Optional[Tier]:
        date_tier = classify(record.next_reminder_date, self.today, self.advance_days, self.offset_days)
        return apply_status_policy(date_tier, record.manual_status, self.status_policy)

    def tiers(self, records: Iterable[CustomerRecord]) -> Dict[int, Optional[Tier]]:
        return {record.source_position: self.tier_for(record) for record in records}

    def run(self, records: Iterable[CustomerRecord]) -> ReminderOutcome:
        """Send reminders in source order, updating state only on success."""

        outcome = ReminderOutcome()
        records = list(records)
        # Evaluated up front so a slow transport cannot shift tiers mid-run.
        tiers = self.tiers(records)
        logger.info("Checking %d records for reminders due on %s", len(records), self.today.isoformat())

        for record in records:
            reason = self._skip_reason(record, tiers[record.source_position])
            if reason:
                outcome.skipped[reason] += 1
                logger.debug("Skipping %s: %s", record.name or record.source_position, reason)
                continue
            self._send(record, tiers[record.source_position], outcome)

        logger.info(
            "Reminder pass complete: %d sent, %d failed, skipped %s",
            outcome.sent,
            outcome.failed,
            dict(outcome.skipped) or "none",
        )
        return outcome

    def _skip_reason(self, record: CustomerRecord, tier: Optional[Tier]) -> Optional[str]:
        if is_opted_out(record.subscription):
            return "opted_out"
        if not record.email:
            return "no_email"
        if tier is None:
            return "no_reminder_date"
        if not tier.notifies:
            return "not_due"
        if already_notified(record, tier, self.today):
            return "already_sent"
        return None

    def _send(self, record: CustomerRecord, tier: Tier, outcome: ReminderOutcome) -> None:
        subject, body = render_message(record, tier, self.today, self.sender_name)
        try:
            self.transport.send(record.email, subject, body)
        except DeliveryFailure as exc:
            logger.warning("Failed to send %s reminder to %s: %s", tier.value, record.email, exc)
            self._record_failure(record, tier, exc, outcome)
            return
        except Exception as exc:
            logger.exception("Unexpected %s from transport sending to %s", type(exc).__name__, record.email)
            self._record_failure(record, tier, exc, outcome)
            return

        record.last_notified_date = self.today
        record.last_notified_tier = tier
        outcome.sent += 1
        logger.info("Sent %s reminder to %s", tier.value, record.email)

    @staticmethod
    def _record_failure(record: CustomerRecord, tier: Tier, exc: Exception, outcome: ReminderOutcome) -> None:
        # Notified state stays untouched so the next run retries.
        outcome.failures.append(
            SendFailure(name=record.name, email=record.email, tier=tier, reason=str(exc))
        )
