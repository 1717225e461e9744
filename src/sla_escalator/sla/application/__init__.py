"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: cycle aggregation and the single-flight cycle runner
- Collaborator interfaces: ticket source and notification dispatcher
- DTOs: Data transfer objects for ingestion and API serialization

This layer depends on the domain layer and collaborator interfaces,
but not on concrete infrastructure implementations.
"""

from sla_escalator.sla.application.dto import (
    TicketRecord,
    EvaluateRequest,
    PolicyResponse,
    ClassifiedTicketResponse,
    SkippedTicketResponse,
    BatchResponse,
    EvaluationResponse,
    CycleReportResponse,
    SourceValidationResponse,
    NotificationTestResponse,
)
from sla_escalator.sla.application.services import (
    ITicketSource,
    INotificationDispatcher,
    CycleAggregator,
    CycleRunner,
    CycleReport,
    CycleOutcome,
    RunnerState,
)

__all__ = [
    # DTOs
    "TicketRecord",
    "EvaluateRequest",
    "PolicyResponse",
    "ClassifiedTicketResponse",
    "SkippedTicketResponse",
    "BatchResponse",
    "EvaluationResponse",
    "CycleReportResponse",
    "SourceValidationResponse",
    "NotificationTestResponse",
    # Services
    "CycleAggregator",
    "CycleRunner",
    "CycleReport",
    "CycleOutcome",
    "RunnerState",
    # Collaborator Interfaces
    "ITicketSource",
    "INotificationDispatcher",
]
