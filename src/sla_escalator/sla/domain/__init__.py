"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: Ticket, SLAStatus, EscalationTier, CycleBatch
- Value Objects: SLAPolicy
- Domain Services: SLAEvaluator, EscalationClassifier (stateless rules)
- Clocks: the single source of "now"

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from sla_escalator.sla.domain.clock import Clock, SystemClock, FixedClock
from sla_escalator.sla.domain.entities import (
    Ticket,
    SLAStatus,
    EscalationTier,
    EscalationItem,
    SkippedTicket,
    CycleBatch,
    DISPATCH_ORDER,
)
from sla_escalator.sla.domain.value_objects import (
    SLAPolicy,
    SLAEvaluator,
    EscalationClassifier,
    resolve_created_at,
    DEFAULT_FUTURE_TOLERANCE,
    MAX_SLA_HOURS,
)

__all__ = [
    # Clocks
    "Clock",
    "SystemClock",
    "FixedClock",
    # Entities
    "Ticket",
    "SLAStatus",
    "EscalationTier",
    "EscalationItem",
    "SkippedTicket",
    "CycleBatch",
    "DISPATCH_ORDER",
    # Value Objects & Services
    "SLAPolicy",
    "SLAEvaluator",
    "EscalationClassifier",
    "resolve_created_at",
    "DEFAULT_FUTURE_TOLERANCE",
    "MAX_SLA_HOURS",
]
