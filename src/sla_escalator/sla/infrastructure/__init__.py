"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA monitoring:
- Sources: ticket exports (CSV/JSON)
- Notifications: Slack and email channels behind one dispatcher
- External: policy loading and the periodic scheduler
"""

from sla_escalator.sla.infrastructure.sources import (
    FileTicketSource,
    StaticTicketSource,
    is_active_status,
)
from sla_escalator.sla.infrastructure.notifications import (
    CircuitBreaker,
    NotificationChannel,
    SlackChannel,
    EmailChannel,
    MultiChannelDispatcher,
    build_dispatcher,
    batch_subject,
    format_batch_message,
)
from sla_escalator.sla.infrastructure.external import (
    SLAScheduler,
    load_policy,
    read_policy_file,
)

__all__ = [
    "FileTicketSource",
    "StaticTicketSource",
    "is_active_status",
    "CircuitBreaker",
    "NotificationChannel",
    "SlackChannel",
    "EmailChannel",
    "MultiChannelDispatcher",
    "build_dispatcher",
    "batch_subject",
    "format_batch_message",
    "SLAScheduler",
    "load_policy",
    "read_policy_file",
]
