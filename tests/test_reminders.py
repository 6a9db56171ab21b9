"""Reminder tiering, the same-day guard and send bookkeeping."""
from datetime import date

import pytest
from conftest import RecordingTransport

from reminder_sync.core.models import CustomerRecord, Tier
from reminder_sync.processing.reminders import (
    ReminderEngine,
    already_notified,
    apply_status_policy,
    classify,
    is_opted_out,
)
from reminder_sync.processing.templates import render_message

TODAY = date(2024, 6, 10)


def _record(position=0, due=date(2024, 6, 15), **overrides) -> CustomerRecord:
    values = {
        "source_position": position,
        "name": f"Customer {position}",
        "plate": f"PL-{position}",
        "email": f"c{position}@example.com",
        "last_service_date": date(2024, 3, 15),
        "next_reminder_date": due,
    }
    values.update(overrides)
    return CustomerRecord(**values)


@pytest.mark.parametrize(
    "due, expected",
    [
        (date(2024, 6, 15), Tier.ADVANCE),
        (date(2024, 6, 17), Tier.ADVANCE),
        (date(2024, 6, 11), Tier.ADVANCE),
        (date(2024, 6, 18), Tier.NOT_DUE),
        (date(2024, 6, 10), Tier.DUE_TODAY),
        (date(2024, 6, 9), Tier.OVERDUE),
        (date(2024, 6, 5), Tier.OVERDUE),
        (None, None),
    ],
)
def test_classify_boundaries(due, expected):
    assert classify(due, TODAY) is expected


def test_offset_widens_advance_window_without_shifting_tiers():
    assert classify(date(2024, 6, 11), TODAY, offset_days=2) is Tier.ADVANCE
    assert classify(date(2024, 6, 12), TODAY, offset_days=2) is Tier.ADVANCE
    assert classify(date(2024, 6, 10), TODAY, offset_days=2) is Tier.DUE_TODAY
    assert classify(date(2024, 6, 9), TODAY, offset_days=2) is Tier.OVERDUE
    assert classify(date(2024, 6, 20), TODAY, advance_days=7, offset_days=3) is Tier.ADVANCE
    assert classify(date(2024, 6, 21), TODAY, advance_days=7, offset_days=3) is Tier.NOT_DUE


def test_offset_never_turns_upcoming_service_into_missed_notice():
    tier = classify(date(2024, 6, 11), TODAY, offset_days=2)
    record = _record(due=date(2024, 6, 11))

    _, body = render_message(record, tier, TODAY, "Service Team")

    assert "missed" not in body
    assert "1 day" in body


@pytest.mark.parametrize(
    "policy, date_tier, manual, expected",
    [
        ("ignore", Tier.NOT_DUE, "OVERDUE", Tier.NOT_DUE),
        ("supplement", Tier.NOT_DUE, "overdue", Tier.OVERDUE),
        ("supplement", Tier.OVERDUE, "advance", Tier.OVERDUE),
        ("supplement", None, "due today", Tier.DUE_TODAY),
        ("supplement", Tier.ADVANCE, "paid", Tier.ADVANCE),
        ("override", Tier.OVERDUE, "not due", Tier.NOT_DUE),
        ("override", Tier.ADVANCE, "", Tier.ADVANCE),
    ],
)
def test_status_policies(policy, date_tier, manual, expected):
    assert apply_status_policy(date_tier, manual, policy) is expected


def test_unknown_status_policy_is_rejected():
    with pytest.raises(ValueError):
        apply_status_policy(Tier.ADVANCE, "OVERDUE", "merge")


@pytest.mark.parametrize("value", ["NOT SUBSCRIBED", "unsubscribed", " Opted Out ", "opt-out"])
def test_opt_out_values(value):
    assert is_opted_out(value)


def test_subscribed_and_blank_values_are_not_opted_out():
    assert not is_opted_out("")
    assert not is_opted_out("SUBSCRIBED")
    assert not is_opted_out("maybe")


def test_guard_is_per_tier_and_per_day():
    record = _record(last_notified_date=TODAY, last_notified_tier=Tier.ADVANCE)

    assert already_notified(record, Tier.ADVANCE, TODAY)
    assert not already_notified(record, Tier.DUE_TODAY, TODAY)
    assert not already_notified(record, Tier.ADVANCE, date(2024, 6, 11))


def test_engine_sends_each_tier_and_records_state():
    transport = RecordingTransport()
    records = [
        _record(0, date(2024, 6, 15)),
        _record(1, TODAY),
        _record(2, date(2024, 6, 5)),
        _record(3, date(2024, 9, 1)),
    ]

    outcome = ReminderEngine(transport, TODAY).run(records)

    assert outcome.sent == 3
    assert outcome.failed == 0
    assert outcome.skipped == {"not_due": 1}
    assert [to for to, _, _ in transport.sent] == ["c0@example.com", "c1@example.com", "c2@example.com"]
    assert [record.last_notified_tier for record in records[:3]] == [Tier.ADVANCE, Tier.DUE_TODAY, Tier.OVERDUE]
    assert all(record.last_notified_date == TODAY for record in records[:3])
    assert records[3].last_notified_date is None


def test_engine_skips_opted_out_missing_email_and_undated():
    transport = RecordingTransport()
    records = [
        _record(0, TODAY, subscription="Unsubscribed"),
        _record(1, TODAY, email=""),
        _record(2, None),
        _record(3, TODAY, phone=""),
    ]

    outcome = ReminderEngine(transport, TODAY).run(records)

    assert outcome.skipped == {"opted_out": 1, "no_email": 1, "no_reminder_date": 1}
    assert transport.attempts == ["c3@example.com"]


def test_rerun_same_day_does_not_resend():
    transport = RecordingTransport()
    records = [_record(0, TODAY)]
    engine = ReminderEngine(transport, TODAY)

    engine.run(records)
    second = engine.run(records)

    assert len(transport.sent) == 1
    assert second.sent == 0
    assert second.skipped == {"already_sent": 1}


def test_different_tier_same_day_is_sent():
    transport = RecordingTransport()
    record = _record(0, TODAY, last_notified_date=TODAY, last_notified_tier=Tier.ADVANCE)

    outcome = ReminderEngine(transport, TODAY).run([record])

    assert outcome.sent == 1
    assert record.last_notified_tier is Tier.DUE_TODAY


def test_failed_send_leaves_state_and_retries_next_run():
    transport = RecordingTransport(failing={"c0@example.com"})
    record = _record(0, date(2024, 6, 5))
    engine = ReminderEngine(transport, TODAY)

    first = engine.run([record])

    assert first.sent == 0
    assert first.failed == 1
    assert first.failures[0].tier is Tier.OVERDUE
    assert "mailbox unavailable" in str(first.failures[0])
    assert record.last_notified_date is None

    transport.failing.clear()
    second = engine.run([record])

    assert second.sent == 1
    assert record.last_notified_tier is Tier.OVERDUE


def test_failure_does_not_stop_later_sends():
    transport = RecordingTransport(failing={"c1@example.com"})
    records = [_record(0, TODAY), _record(1, TODAY), _record(2, TODAY)]

    outcome = ReminderEngine(transport, TODAY).run(records)

    assert transport.attempts == ["c0@example.com", "c1@example.com", "c2@example.com"]
    assert outcome.sent == 2
    assert outcome.failed == 1


def test_override_policy_drives_sends_from_manual_status():
    transport = RecordingTransport()
    record = _record(0, date(2024, 12, 1), manual_status="Overdue")

    ReminderEngine(transport, TODAY, status_policy="override").run([record])

    assert record.last_notified_tier is Tier.OVERDUE
    assert transport.sent[0][1].startswith("Overdue Service Notice")


def test_templates_mention_vehicle_and_dates():
    record = _record(0, date(2024, 6, 15), name="Ada")

    subject, body = render_message(record, Tier.ADVANCE, TODAY, sender_name="Gem Auto")

    assert subject == "Upcoming Service Reminder - Ada"
    assert "in 5 day(s)" in body
    assert "PL-0" in body
    assert "15-06-2024" in body
    assert body.endswith("Gem Auto")


def test_templates_fall_back_to_generic_greeting():
    record = _record(0, TODAY, name="", plate="")

    subject, body = render_message(record, Tier.DUE_TODAY, TODAY)

    assert subject == "Service Due Today - Customer"
    assert body.startswith("Dear Customer,")
    assert "Your vehicle is due for service TODAY" in body


def test_not_due_has_no_template():
    with pytest.raises(ValueError):
        render_message(_record(), Tier.NOT_DUE, TODAY)
