"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="sla-escalator", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== SLA Policy ==========
    # Range checks happen in SLAPolicy so a bad value fails as InvalidPolicy.
    critical_sla_hours: float = Field(default=4, description="SLA hours for critical tickets")
    high_sla_hours: float = Field(default=8, description="SLA hours for high tickets")
    medium_sla_hours: float = Field(default=24, description="SLA hours for medium tickets")
    low_sla_hours: float = Field(default=72, description="SLA hours for low tickets")
    default_sla_hours: float = Field(
        default=24,
        description="SLA hours for tickets with an unknown priority"
    )
    warning_threshold: float = Field(
        default=0.80,
        description="Fraction of SLA time used that raises a warning"
    )
    critical_threshold: float = Field(
        default=0.95,
        description="Fraction of SLA time used that raises a critical warning"
    )
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Optional YAML file overriding the SLA policy"
    )
    future_tolerance_minutes: float = Field(
        default=5,
        description="How far in the future a created_at may lie before it is rejected",
        ge=0
    )

    # ========== Scheduling ==========
    check_interval_minutes: int = Field(
        default=5,
        description="Minutes between SLA evaluation cycles",
        ge=1
    )
    run_on_startup: bool = Field(
        default=True,
        description="Run one evaluation cycle when the service starts"
    )

    # ========== Ticket Source ==========
    data_source_path: Path = Field(
        default=Path("./data/tickets.csv"),
        description="Path to the ticket export"
    )
    data_source_type: str = Field(default="csv", description="Ticket export format")

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for notifications"
    )
    slack_channel: str = Field(
        default="#sla-escalations",
        description="Slack channel for SLA notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== Email Integration ==========
    smtp_host: Optional[str] = Field(default=None, description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port", ge=1, le=65535)
    smtp_user: Optional[str] = Field(default=None, description="SMTP login user")
    smtp_pass: Optional[str] = Field(default=None, description="SMTP login password")
    notification_email: Optional[str] = Field(
        default=None,
        description="Recipient of SLA emails (defaults to the SMTP user)"
    )
    smtp_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for SMTP connections",
        ge=0.1
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("data_source_type")
    @classmethod
    def validate_data_source_type(cls, v: str) -> str:
        """Normalize the export format name."""
        return v.strip().lower()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str):
    """Ticket priority levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketStatus(str):
    """Ticket statuses reported by the ticket export."""
    NEW = "new"
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    WAITING = "waiting"
    RESOLVED = "resolved"
    CLOSED = "closed"


# ========== Lists for validation ==========

VALID_PRIORITIES = [
    Priority.CRITICAL, Priority.HIGH,
    Priority.MEDIUM, Priority.LOW
]
ACTIVE_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.IN_PROGRESS,
    "in_progress", TicketStatus.PENDING, TicketStatus.WAITING
]
