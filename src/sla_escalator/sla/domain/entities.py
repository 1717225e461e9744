"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple


class EscalationTier(IntEnum):
    """
    Escalation severity assigned to a ticket in one cycle.

    Ordered so that a higher value is always more severe.
    """
    NONE = 0
    WARNING = 1
    CRITICAL = 2
    VIOLATION = 3

    @property
    def label(self) -> str:
        return self.name.lower()


# Order in which tier batches are handed to the dispatcher.
DISPATCH_ORDER = (EscalationTier.VIOLATION, EscalationTier.CRITICAL, EscalationTier.WARNING)


@dataclass(frozen=True)
class Ticket:
    """
    Support ticket as handed over by the ticket source.

    Read-only to the engine. ``created_at`` may still be a raw timestamp
    string; the evaluator resolves it and rejects what it cannot parse.
    Descriptive fields are carried through for notification formatting only.
    """

    id: str
    created_at: Any
    priority: Optional[str] = None

    title: Optional[str] = None
    customer: Optional[str] = None
    assignee: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None

    def __post_init__(self):
        """Validate ticket on initialization."""
        if not str(self.id or "").strip():
            raise ValueError("ticket id must not be empty")


@dataclass(frozen=True)
class SLAStatus:
    """
    SLA position of one ticket at one instant.

    All figures are kept at full precision; rounding only happens in
    ``to_dict`` so classification never sees presentation values.
    """

    sla_hours: float
    deadline: datetime
    hours_elapsed: float
    hours_remaining: float
    percentage_used: float
    is_violated: bool
    hours_overdue: float

    def to_dict(self) -> dict:
        """Convert to dictionary for notifications and API responses."""
        return {
            "sla_hours": self.sla_hours,
            "deadline": self.deadline.isoformat(),
            "hours_elapsed": round(self.hours_elapsed, 2),
            "hours_remaining": round(self.hours_remaining, 2),
            "percentage_used": round(self.percentage_used, 3),
            "is_violated": self.is_violated,
            "hours_overdue": round(self.hours_overdue, 2),
        }


class EscalationItem(NamedTuple):
    """A ticket paired with the status it was classified on."""
    ticket: Ticket
    status: SLAStatus


class SkippedTicket(NamedTuple):
    """A ticket left out of a cycle because it could not be evaluated."""
    ticket_id: str
    reason: str


@dataclass
class CycleBatch:
    """
    Tickets of one cycle partitioned by escalation tier.

    Every evaluable ticket lands in exactly one list, in source order.
    """

    violations: List[EscalationItem] = field(default_factory=list)
    criticals: List[EscalationItem] = field(default_factory=list)
    warnings: List[EscalationItem] = field(default_factory=list)
    on_track: List[EscalationItem] = field(default_factory=list)
    skipped: List[SkippedTicket] = field(default_factory=list)

    def for_tier(self, tier: EscalationTier) -> List[EscalationItem]:
        """Get the list holding tickets of the given tier."""
        return {
            EscalationTier.VIOLATION: self.violations,
            EscalationTier.CRITICAL: self.criticals,
            EscalationTier.WARNING: self.warnings,
            EscalationTier.NONE: self.on_track,
        }[tier]

    def add(self, tier: EscalationTier, item: EscalationItem) -> None:
        self.for_tier(tier).append(item)

    def escalations(self) -> Iterator[Tuple[EscalationTier, List[EscalationItem]]]:
        """Yield non-empty escalation batches, most severe first."""
        for tier in DISPATCH_ORDER:
            items = self.for_tier(tier)
            if items:
                yield tier, items

    @property
    def evaluated_count(self) -> int:
        return len(self.violations) + len(self.criticals) + len(self.warnings) + len(self.on_track)

    def counts(self) -> Dict[str, int]:
        return {
            "violations": len(self.violations),
            "criticals": len(self.criticals),
            "warnings": len(self.warnings),
            "on_track": len(self.on_track),
            "skipped": len(self.skipped),
        }
