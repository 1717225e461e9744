"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from sla_escalator.core.exceptions import (
    ApplicationException,
    DomainException,
    ValidationException,
    ConfigurationException,
    ExternalServiceException,
    InvalidPolicy,
    InvalidTimestamp,
    SourceFailure,
    DispatchFailure,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "ValidationException",
    "ConfigurationException",
    "ExternalServiceException",
    "InvalidPolicy",
    "InvalidTimestamp",
    "SourceFailure",
    "DispatchFailure",
]
