"""
SLA Application DTOs
=====================

Data Transfer Objects for ticket ingestion and the API layer.

These Pydantic models handle serialization/deserialization and validation.
Following YAGNI - only what's needed.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from sla_escalator.sla.domain import CycleBatch, EscalationItem, EscalationTier, Ticket


# ========== Type Aliases for Literals ==========
TierStr = Literal["none", "warning", "critical", "violation"]
CycleOutcomeStr = Literal["completed", "failed", "dropped"]


# ========== Ingestion DTOs ==========

class TicketRecord(BaseModel):
    """
    A ticket row as exported by a helpdesk.

    Field names vary between exports, so each field accepts the common
    spellings. ``created_at`` is kept as given; the evaluator decides
    whether it is a usable instant.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("id", "ticket_id", "ticketId", "ID"),
        description="Ticket identifier"
    )
    title: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("title", "subject", "summary", "description")
    )
    priority: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("priority", "Priority")
    )
    status: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("status", "Status")
    )
    created_at: Optional[Union[datetime, str]] = Field(
        None,
        validation_alias=AliasChoices("created_at", "createdAt", "created", "timestamp"),
        description="Ticket creation timestamp"
    )
    customer: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("customer", "customer_name", "customerName", "requester")
    )
    assignee: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("assignee", "assigned_to", "assignedTo")
    )
    category: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("category", "type", "issue_type")
    )

    @field_validator("id", "title", "priority", "status", "customer", "assignee", "category")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """CSV exports use empty cells for missing values."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_ticket(self) -> Ticket:
        """Convert to the domain entity."""
        return Ticket(
            id=self.id or "",
            created_at=self.created_at,
            priority=self.priority,
            title=self.title,
            customer=self.customer,
            assignee=self.assignee,
            category=self.category,
            status=self.status,
        )


# ========== Request DTOs ==========

class EvaluateRequest(BaseModel):
    """Request model for ad-hoc evaluation."""
    tickets: List[TicketRecord] = Field(..., description="Tickets to evaluate")
    now: Optional[datetime] = Field(
        None,
        description="Evaluation instant (defaults to the service clock)"
    )

    @field_validator("tickets")
    @classmethod
    def validate_ids(cls, v: List[TicketRecord]) -> List[TicketRecord]:
        """Every ticket needs an identifier to be reported on."""
        for position, record in enumerate(v):
            if not record.id:
                raise ValueError(f"ticket at position {position} has no id")
        return v


# ========== Response DTOs ==========

class PolicyResponse(BaseModel):
    """Response model for the active SLA policy."""
    hours_by_priority: Dict[str, float]
    default_hours: float
    thresholds: Dict[str, float]


class ClassifiedTicketResponse(BaseModel):
    """A ticket with its tier and SLA figures."""
    id: str
    title: Optional[str] = None
    priority: Optional[str] = None
    customer: Optional[str] = None
    assignee: Optional[str] = None
    tier: TierStr
    sla: Dict[str, Any] = Field(..., description="Rounded SLA figures")

    @classmethod
    def from_item(cls, tier: EscalationTier, item: EscalationItem) -> "ClassifiedTicketResponse":
        ticket = item.ticket
        return cls(
            id=ticket.id,
            title=ticket.title,
            priority=ticket.priority,
            customer=ticket.customer,
            assignee=ticket.assignee,
            tier=tier.label,
            sla=item.status.to_dict(),
        )


class SkippedTicketResponse(BaseModel):
    """A ticket that could not be evaluated."""
    ticket_id: str
    reason: str


class BatchResponse(BaseModel):
    """Tier partition of one evaluation."""
    violations: List[ClassifiedTicketResponse] = Field(default_factory=list)
    criticals: List[ClassifiedTicketResponse] = Field(default_factory=list)
    warnings: List[ClassifiedTicketResponse] = Field(default_factory=list)
    on_track: List[ClassifiedTicketResponse] = Field(default_factory=list)
    skipped: List[SkippedTicketResponse] = Field(default_factory=list)

    @classmethod
    def from_batch(cls, batch: CycleBatch) -> "BatchResponse":
        def render(tier: EscalationTier) -> List[ClassifiedTicketResponse]:
            return [ClassifiedTicketResponse.from_item(tier, item) for item in batch.for_tier(tier)]

        return cls(
            violations=render(EscalationTier.VIOLATION),
            criticals=render(EscalationTier.CRITICAL),
            warnings=render(EscalationTier.WARNING),
            on_track=render(EscalationTier.NONE),
            skipped=[
                SkippedTicketResponse(ticket_id=s.ticket_id, reason=s.reason)
                for s in batch.skipped
            ],
        )


class EvaluationResponse(BaseModel):
    """Response model for ad-hoc evaluation."""
    evaluated_at: datetime
    summary: Dict[str, int]
    batch: BatchResponse


class CycleReportResponse(BaseModel):
    """Response model for a triggered evaluation cycle."""
    outcome: CycleOutcomeStr
    started_at: datetime
    finished_at: Optional[datetime] = None
    ticket_count: int = 0
    summary: Dict[str, int] = Field(default_factory=dict)
    dispatched: List[TierStr] = Field(default_factory=list)
    dispatch_failures: List[str] = Field(default_factory=list)
    skipped: List[SkippedTicketResponse] = Field(default_factory=list)
    error: Optional[str] = None


class SourceValidationResponse(BaseModel):
    """Response model for ticket source validation."""
    is_valid: bool
    ticket_count: int = 0
    sample_ticket: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class NotificationTestResponse(BaseModel):
    """Response model for a test notification."""
    delivered: bool
    channels: List[str]
