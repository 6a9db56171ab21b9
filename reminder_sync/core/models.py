"""Data models for customer records and sync results."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class Tier(str, Enum):
    """Reminder classification for a single record on a given day."""

    NOT_DUE = "NOT_DUE"
    ADVANCE = "ADVANCE"
    DUE_TODAY = "DUE_TODAY"
    OVERDUE = "OVERDUE"

    @property
    def notifies(self) -> bool:
        return self is not Tier.NOT_DUE


class ContactStatus(str, Enum):
    COMPLETE = "COMPLETE"
    MISSING = "MISSING"


@dataclass
class CustomerRecord:
    """One Master row, with derived fields computed for the current run."""

    source_position: int
    name: str = ""
    plate: str = ""
    email: str = ""
    phone: str = ""
    last_service_raw: Any = ""
    last_service_date: Optional[date] = None
    next_reminder_date: Optional[date] = None
    contact_status: ContactStatus = ContactStatus.COMPLETE
    last_notified_date: Optional[date] = None
    last_notified_tier: Optional[Tier] = None
    subscription: str = ""
    manual_status: str = ""

    @property
    def key(self) -> tuple[str, str]:
        """Natural key used to recognise the same customer across runs."""

        return (self.name.strip(), self.plate.strip())

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation for logging and tests."""

        return asdict(self)


@dataclass
class SendFailure:
    """A notification attempt that the transport rejected."""

    name: str
    email: str
    tier: Tier
    reason: str

    def __str__(self) -> str:
        return f"{self.name or 'Unknown'} ({self.email}): {self.reason}"


@dataclass
class SyncSummary:
    """Result of one sync run, returned to the caller."""

    processed: int = 0
    sent: int = 0
    failed: int = 0
    failures: List[SendFailure] = field(default_factory=list)
    skipped: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "failures": [str(failure) for failure in self.failures],
            "skipped": dict(self.skipped),
        }
