"""
SLA Value Objects
==================

Immutable policy and the stateless evaluation rules built on it.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from sla_escalator.config import Priority, VALID_PRIORITIES
from sla_escalator.core import InvalidPolicy, InvalidTimestamp
from sla_escalator.sla.domain.clock import as_utc
from sla_escalator.sla.domain.entities import EscalationTier, SLAStatus, Ticket

_HOUR = timedelta(hours=1)
_TIMESTAMP = TypeAdapter(datetime)

DEFAULT_FUTURE_TOLERANCE = timedelta(minutes=5)

# One century; any deadline must stay representable as a datetime.
MAX_SLA_HOURS = 100 * 365 * 24


@dataclass(frozen=True)
class SLAPolicy:
    """
    SLA allotments by priority plus the escalation thresholds.

    Built once at startup. Any out-of-range option raises InvalidPolicy,
    so a misconfigured policy never reaches an evaluation cycle.
    """

    critical: float = 4
    high: float = 8
    medium: float = 24
    low: float = 72
    default_hours: float = 24
    warning_fraction: float = 0.80
    critical_fraction: float = 0.95

    def __post_init__(self):
        for name in ("critical", "high", "medium", "low", "default_hours"):
            value = _as_number(name, getattr(self, name))
            if not 0 < value <= MAX_SLA_HOURS:
                raise InvalidPolicy(
                    f"SLA hours for '{name}' must be in (0, {MAX_SLA_HOURS}], got {value}",
                    {"option": name, "value": value}
                )
            object.__setattr__(self, name, value)

        warning = _as_number("warning_fraction", self.warning_fraction)
        critical = _as_number("critical_fraction", self.critical_fraction)
        if not 0 < warning < critical < 1:
            raise InvalidPolicy(
                "Thresholds must satisfy 0 < warning_fraction < critical_fraction < 1, "
                f"got warning={warning} critical={critical}",
                {"warning_fraction": warning, "critical_fraction": critical}
            )
        object.__setattr__(self, "warning_fraction", warning)
        object.__setattr__(self, "critical_fraction", critical)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "SLAPolicy":
        """
        Build a policy from named configuration options.

        Accepts ``critical``, ``high``, ``medium``, ``low``, ``default`` and the
        two fractions (``warning_fraction``/``warningFraction``,
        ``critical_fraction``/``criticalFraction``). Missing options keep
        their defaults.
        """
        aliases = {
            "default": "default_hours",
            "warningFraction": "warning_fraction",
            "criticalFraction": "critical_fraction",
        }
        known = set(VALID_PRIORITIES) | {"default_hours", "warning_fraction", "critical_fraction"}

        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = aliases.get(key, key)
            if name not in known:
                raise InvalidPolicy(f"Unknown SLA policy option '{key}'", {"option": key})
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    @property
    def hours_by_priority(self) -> Dict[str, float]:
        return {
            Priority.CRITICAL: self.critical,
            Priority.HIGH: self.high,
            Priority.MEDIUM: self.medium,
            Priority.LOW: self.low,
        }

    @property
    def thresholds(self) -> Dict[str, float]:
        return {"warning": self.warning_fraction, "critical": self.critical_fraction}

    def hours_for(self, priority: Optional[str]) -> float:
        """
        Resolve the SLA allotment for a priority.

        Matching is case-insensitive; anything that is not one of the four
        known priorities (including no priority at all) gets ``default_hours``.
        """
        if not isinstance(priority, str):
            return self.default_hours
        return self.hours_by_priority.get(priority.strip().lower(), self.default_hours)

    def to_dict(self) -> dict:
        return {
            "hours_by_priority": self.hours_by_priority,
            "default_hours": self.default_hours,
            "thresholds": self.thresholds,
        }


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidPolicy(f"Option '{name}' must be a number", {"option": name})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidPolicy(
            f"Option '{name}' must be a number, got {value!r}",
            {"option": name}
        ) from None
    if not math.isfinite(number):
        raise InvalidPolicy(f"Option '{name}' must be finite", {"option": name})
    return number


def resolve_created_at(ticket: Ticket) -> datetime:
    """
    Resolve a ticket's creation time to an aware instant.

    Naive values are taken as UTC. Raises InvalidTimestamp when the value
    is missing or cannot be parsed.
    """
    value = ticket.created_at
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidTimestamp(ticket.id, value, "created_at is missing")
    if isinstance(value, bool):
        raise InvalidTimestamp(ticket.id, value, "created_at is not a timestamp")
    try:
        instant = _TIMESTAMP.validate_python(value)
    except ValidationError:
        raise InvalidTimestamp(
            ticket.id, value, f"created_at {value!r} is not a valid timestamp"
        ) from None
    return as_utc(instant)


class SLAEvaluator:
    """
    Pure SLA arithmetic for a single ticket.

    Stateless: the same ticket, policy and instant always give the same
    status.
    """

    @staticmethod
    def evaluate(
        ticket: Ticket,
        policy: SLAPolicy,
        now: datetime,
        future_tolerance: timedelta = DEFAULT_FUTURE_TOLERANCE
    ) -> SLAStatus:
        """
        Compute a ticket's SLA status at ``now``.

        Args:
            ticket: Ticket to evaluate
            policy: Policy supplying the allotment for the ticket's priority
            now: Evaluation instant
            future_tolerance: How far ``created_at`` may lie after ``now``
                (clock skew) before the ticket is rejected

        Returns:
            SLAStatus with full-precision figures

        Raises:
            InvalidTimestamp: created_at is unparsable, too far in the future,
                or its deadline falls outside the datetime range
        """
        now = as_utc(now)
        created_at = resolve_created_at(ticket)

        elapsed = now - created_at
        if elapsed < timedelta(0):
            if -elapsed > future_tolerance:
                raise InvalidTimestamp(
                    ticket.id, ticket.created_at,
                    f"created_at lies {-elapsed / _HOUR:.2f} hours in the future"
                )
            elapsed = timedelta(0)

        sla_hours = policy.hours_for(ticket.priority)
        allotment = timedelta(hours=sla_hours)
        try:
            deadline = created_at + allotment
        except OverflowError:
            raise InvalidTimestamp(
                ticket.id, ticket.created_at, "created_at is out of range"
            ) from None

        remaining = deadline - now
        is_violated = now > deadline

        # timedelta ratios are exact integer-microsecond divisions
        return SLAStatus(
            sla_hours=sla_hours,
            deadline=deadline,
            hours_elapsed=elapsed / _HOUR,
            hours_remaining=remaining / _HOUR,
            percentage_used=elapsed / allotment,
            is_violated=is_violated,
            hours_overdue=(now - deadline) / _HOUR if is_violated else 0.0,
        )


class EscalationClassifier:
    """Maps an SLA status onto exactly one escalation tier."""

    @staticmethod
    def classify(status: SLAStatus, policy: SLAPolicy) -> EscalationTier:
        """
        Classify a status, most severe rule first.

        The deadline itself is not yet a violation (strict ``>``), while the
        warning and critical thresholds are inclusive.
        """
        if status.is_violated:
            return EscalationTier.VIOLATION
        if status.percentage_used >= policy.critical_fraction:
            return EscalationTier.CRITICAL
        if status.percentage_used >= policy.warning_fraction:
            return EscalationTier.WARNING
        return EscalationTier.NONE
