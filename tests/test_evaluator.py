"""Tests for SLA evaluation and escalation classification."""

from datetime import datetime, timedelta, timezone

import pytest

from sla_escalator.core import InvalidTimestamp
from sla_escalator.sla.domain import (
    EscalationClassifier,
    EscalationTier,
    FixedClock,
    SLAEvaluator,
    SLAPolicy,
    Ticket,
)

CREATED = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
POLICY = SLAPolicy()


def _ticket(priority="high", created_at=CREATED, ticket_id="T-1") -> Ticket:
    return Ticket(id=ticket_id, created_at=created_at, priority=priority)


def _tier_at(ticket: Ticket, now: datetime, policy: SLAPolicy = POLICY) -> EscalationTier:
    status = SLAEvaluator.evaluate(ticket, policy, now)
    return EscalationClassifier.classify(status, policy)


# ---------------------------------------------------------------------------
# Evaluation arithmetic
# ---------------------------------------------------------------------------


def test_status_figures_for_high_ticket():
    status = SLAEvaluator.evaluate(_ticket(), POLICY, CREATED + timedelta(hours=2))

    assert status.sla_hours == 8
    assert status.deadline == CREATED + timedelta(hours=8)
    assert status.hours_elapsed == 2
    assert status.hours_remaining == 6
    assert status.percentage_used == 0.25
    assert status.is_violated is False
    assert status.hours_overdue == 0


def test_overdue_ticket_reports_negative_remaining():
    status = SLAEvaluator.evaluate(_ticket("critical"), POLICY, CREATED + timedelta(hours=5, minutes=30))

    assert status.is_violated is True
    assert status.hours_remaining == -1.5
    assert status.hours_overdue == 1.5
    assert status.percentage_used == 5.5 / 4


def test_presentation_rounding_does_not_touch_status():
    now = CREATED + timedelta(minutes=20)
    status = SLAEvaluator.evaluate(_ticket(), POLICY, now)

    rendered = status.to_dict()
    assert rendered["hours_elapsed"] == 0.33
    assert rendered["percentage_used"] == 0.042
    assert status.hours_elapsed == pytest.approx(1 / 3)
    assert rendered["deadline"] == "2024-01-15T18:00:00+00:00"


def test_evaluation_is_idempotent():
    ticket = _ticket("medium")
    now = CREATED + timedelta(hours=19, minutes=13, seconds=7)

    assert SLAEvaluator.evaluate(ticket, POLICY, now) == SLAEvaluator.evaluate(ticket, POLICY, now)


def test_string_timestamps_are_parsed():
    status = SLAEvaluator.evaluate(
        _ticket(created_at="2024-01-15T10:00:00Z"), POLICY, CREATED + timedelta(hours=4)
    )
    assert status.hours_elapsed == 4


def test_naive_timestamps_are_treated_as_utc():
    status = SLAEvaluator.evaluate(
        _ticket(created_at="2024-01-15T10:00:00"), POLICY, CREATED + timedelta(hours=1)
    )
    assert status.deadline == CREATED + timedelta(hours=8)


@pytest.mark.parametrize("created_at", ["not a date", "", None, "2024-13-45T99:00:00Z", True])
def test_unparsable_timestamp_raises(created_at):
    with pytest.raises(InvalidTimestamp) as exc_info:
        SLAEvaluator.evaluate(_ticket(created_at=created_at), POLICY, CREATED)
    assert exc_info.value.ticket_id == "T-1"


def test_slightly_future_ticket_counts_as_just_created():
    now = CREATED
    ticket = _ticket(created_at=CREATED + timedelta(minutes=3))

    status = SLAEvaluator.evaluate(ticket, POLICY, now)

    assert status.hours_elapsed == 0
    assert status.percentage_used == 0
    assert status.hours_remaining == pytest.approx(8.05)
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.NONE


def test_far_future_ticket_is_rejected():
    ticket = _ticket(created_at=CREATED + timedelta(hours=2))
    with pytest.raises(InvalidTimestamp):
        SLAEvaluator.evaluate(ticket, POLICY, CREATED)


def test_future_tolerance_is_configurable():
    ticket = _ticket(created_at=CREATED + timedelta(hours=2))
    status = SLAEvaluator.evaluate(ticket, POLICY, CREATED, future_tolerance=timedelta(hours=3))
    assert status.hours_elapsed == 0


def test_unknown_priority_matches_missing_priority():
    policy = SLAPolicy(default_hours=24)
    now = CREATED + timedelta(hours=20)

    urgent = SLAEvaluator.evaluate(_ticket("urgent"), policy, now)
    missing = SLAEvaluator.evaluate(_ticket(None), policy, now)

    assert urgent == missing
    assert urgent.sla_hours == 24
    assert EscalationClassifier.classify(urgent, policy) == EscalationClassifier.classify(missing, policy)


# ---------------------------------------------------------------------------
# Tier boundaries (high priority, 8h SLA)
# ---------------------------------------------------------------------------


def test_warning_threshold_is_inclusive():
    now = CREATED + timedelta(hours=6, minutes=24)
    status = SLAEvaluator.evaluate(_ticket(), POLICY, now)

    assert status.percentage_used == 0.80
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.WARNING


def test_just_below_warning_is_none():
    now = CREATED + timedelta(hours=6, minutes=24) - timedelta(microseconds=1)
    assert _tier_at(_ticket(), now) == EscalationTier.NONE


def test_critical_threshold_is_inclusive():
    now = CREATED + timedelta(hours=7, minutes=36)
    status = SLAEvaluator.evaluate(_ticket(), POLICY, now)

    assert status.percentage_used == 0.95
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.CRITICAL


def test_deadline_instant_is_not_yet_violated():
    now = CREATED + timedelta(hours=8)
    status = SLAEvaluator.evaluate(_ticket(), POLICY, now)

    assert status.is_violated is False
    assert status.hours_overdue == 0
    assert status.percentage_used == 1.0
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.CRITICAL


def test_one_tick_past_deadline_is_violation():
    now = CREATED + timedelta(hours=8, microseconds=1)
    status = SLAEvaluator.evaluate(_ticket(), POLICY, now)

    assert status.is_violated is True
    assert 0 < status.hours_overdue < 1e-6
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.VIOLATION


def test_violation_wins_over_thresholds():
    status = SLAEvaluator.evaluate(_ticket(), POLICY, CREATED + timedelta(days=3))
    assert EscalationClassifier.classify(status, POLICY) == EscalationTier.VIOLATION


def test_custom_thresholds_are_used():
    policy = SLAPolicy(warning_fraction=0.5, critical_fraction=0.75)
    ticket = _ticket()

    assert _tier_at(ticket, CREATED + timedelta(hours=3, minutes=59), policy) == EscalationTier.NONE
    assert _tier_at(ticket, CREATED + timedelta(hours=4), policy) == EscalationTier.WARNING
    assert _tier_at(ticket, CREATED + timedelta(hours=6), policy) == EscalationTier.CRITICAL


@pytest.mark.parametrize("priority", ["critical", "high", "medium", "low", "urgent"])
def test_tier_never_decreases_as_time_passes(priority):
    ticket = _ticket(priority)
    previous_tier = EscalationTier.NONE
    previous_used = -1.0

    for minutes in range(0, 80 * 60, 17):
        now = CREATED + timedelta(minutes=minutes)
        status = SLAEvaluator.evaluate(ticket, POLICY, now)
        tier = EscalationClassifier.classify(status, POLICY)

        assert status.percentage_used >= previous_used
        assert tier >= previous_tier
        previous_tier, previous_used = tier, status.percentage_used

    assert previous_tier == EscalationTier.VIOLATION


def test_fixed_clock_drives_escalation():
    clock = FixedClock(datetime(2024, 1, 15, 10, 0))
    ticket = _ticket()

    assert clock.now() == CREATED
    assert _tier_at(ticket, clock.advance(timedelta(hours=7))) == EscalationTier.WARNING

    clock.set(CREATED + timedelta(hours=9))
    assert _tier_at(ticket, clock.now()) == EscalationTier.VIOLATION


@pytest.mark.parametrize("created_at", ["9999-12-31T23:00:00Z", datetime.max])
def test_far_edge_of_datetime_range_is_rejected(created_at):
    with pytest.raises(InvalidTimestamp) as exc_info:
        SLAEvaluator.evaluate(_ticket(created_at=created_at), POLICY, CREATED)
    assert "in the future" in exc_info.value.reason


def test_deadline_past_datetime_range_is_rejected():
    ticket = _ticket("low", created_at="9999-12-31T00:00:00Z")
    now = datetime(9999, 12, 31, 1, 0, tzinfo=timezone.utc)

    with pytest.raises(InvalidTimestamp) as exc_info:
        SLAEvaluator.evaluate(ticket, POLICY, now)

    assert exc_info.value.reason == "created_at is out of range"
    assert exc_info.value.ticket_id == "T-1"


def test_earliest_representable_timestamp_is_evaluated():
    status = SLAEvaluator.evaluate(_ticket(created_at="0001-01-01T00:00:00Z"), POLICY, CREATED)
    assert status.is_violated is True
