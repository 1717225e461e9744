"""
Core Exceptions
================

Custom exceptions for the SLA escalator.

Each failure class maps to one recovery scope:
- InvalidPolicy: fatal, raised while building the policy at startup
- InvalidTimestamp: per ticket, the ticket is left out of the cycle
- SourceFailure: per cycle, the cycle is aborted and retried on the next trigger
- DispatchFailure: per tier, other tiers are still dispatched
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external collaborator failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class InvalidPolicy(ConfigurationException):
    """Raised when SLA policy options are out of range."""


class InvalidTimestamp(ValidationException):
    """Raised when a ticket's creation time cannot be evaluated."""

    def __init__(
        self,
        ticket_id: Any,
        value: Any,
        reason: str,
        details: Optional[dict] = None
    ):
        self.ticket_id = ticket_id
        self.value = value
        self.reason = reason
        super().__init__(
            f"Ticket {ticket_id}: {reason}",
            details or {"ticket_id": ticket_id, "created_at": str(value)}
        )


class SourceFailure(ExternalServiceException):
    """Raised when the ticket source cannot produce tickets."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Ticket Source", message, details)


class DispatchFailure(ExternalServiceException):
    """Raised when a tier batch could not be delivered."""

    def __init__(self, tier: str, message: str, details: Optional[dict] = None):
        self.tier = tier
        super().__init__(
            "Notification Dispatcher",
            f"{tier} batch not delivered: {message}",
            details or {"tier": tier}
        )
