"""
SLA Notification Transport
==========================

Delivery of tier batches to humans:
- Message formatting per escalation tier
- Slack webhook channel (httpx, retry with backoff, circuit breaker)
- Email channel (SMTP with STARTTLS)
- Multi-channel dispatcher fanning one batch out to every channel
"""

import asyncio
import html
import smtplib
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Dict, List, Optional, Sequence

import httpx

from sla_escalator.config import Settings
from sla_escalator.shared.infrastructure.logging import get_logger
from sla_escalator.sla.application import INotificationDispatcher
from sla_escalator.sla.domain import EscalationItem, EscalationTier

logger = get_logger(__name__)


# ========== Message Formatting ==========

_SUBJECTS = {
    EscalationTier.VIOLATION: "🚨 SLA VIOLATION ALERT - {count} ticket(s) overdue",
    EscalationTier.CRITICAL: "⚠️ CRITICAL SLA WARNING - {count} ticket(s) near breach",
    EscalationTier.WARNING: "📢 SLA Warning - {count} ticket(s) approaching deadline",
}

_INTROS = {
    EscalationTier.VIOLATION: "The following tickets have exceeded their SLA deadlines:",
    EscalationTier.CRITICAL: "The following tickets are critically close to SLA breach:",
    EscalationTier.WARNING: "The following tickets are approaching their SLA deadlines:",
}

_MARKERS = {
    EscalationTier.VIOLATION: "🔴",
    EscalationTier.CRITICAL: "🟠",
    EscalationTier.WARNING: "🟡",
}

_CALLS_TO_ACTION = {
    EscalationTier.VIOLATION: (
        "⚡ *IMMEDIATE ACTION REQUIRED* ⚡\n"
        "Please escalate these tickets immediately to prevent further SLA violations."
    ),
    EscalationTier.CRITICAL: (
        "⚠️ *URGENT ATTENTION NEEDED* ⚠️\n"
        "These tickets require immediate attention to prevent SLA violations."
    ),
    EscalationTier.WARNING: (
        "📋 *ACTION RECOMMENDED* 📋\n"
        "Please review and prioritize these tickets to ensure SLA compliance."
    ),
}

TIER_COLORS = {
    EscalationTier.VIOLATION: "#dc3545",
    EscalationTier.CRITICAL: "#fd7e14",
    EscalationTier.WARNING: "#ffc107",
}

SLACK_COLORS = {
    EscalationTier.VIOLATION: "danger",
    EscalationTier.CRITICAL: "warning",
    EscalationTier.WARNING: "#ffc107",
}


def batch_subject(tier: EscalationTier, count: int) -> str:
    """Get the notification subject for a tier batch."""
    return _SUBJECTS[tier].format(count=count)


def format_batch_message(tier: EscalationTier, batch: Sequence[EscalationItem]) -> str:
    """
    Render a tier batch as plain text, one block per ticket in batch order.

    Violations report hours overdue; critical and warning batches report
    SLA usage and hours remaining.
    """
    lines = [_INTROS[tier], ""]

    for ticket, status in batch:
        lines.append(f"{_MARKERS[tier]} *Ticket #{ticket.id}*")
        lines.append(f"   Title: {ticket.title or 'N/A'}")
        lines.append(f"   Priority: {(ticket.priority or 'default').upper()}")
        lines.append(f"   Customer: {ticket.customer or 'N/A'}")
        lines.append(f"   Assignee: {ticket.assignee or 'Unassigned'}")
        if tier == EscalationTier.VIOLATION:
            lines.append(f"   Hours Overdue: {status.hours_overdue:.2f}")
        else:
            lines.append(f"   SLA Usage: {status.percentage_used * 100:.1f}%")
            lines.append(f"   Hours Remaining: {status.hours_remaining:.2f}")
        lines.append(f"   SLA Deadline: {status.deadline.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        lines.append("")

    lines.append(_CALLS_TO_ACTION[tier])
    return "\n".join(lines)


def format_email_html(subject: str, message: str, color: str) -> str:
    """Wrap a plain-text message in a simple HTML email."""
    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
            <h1>{html.escape(subject)}</h1>
        </div>
        <div style="padding: 20px;">
            <pre style="white-space: pre-wrap; font-family: Arial, sans-serif;">{html.escape(message)}</pre>
        </div>
        <div style="background-color: #f8f9fa; padding: 15px; text-align: center; font-size: 12px; color: #666;">
            <p>This is an automated message from the SLA Tracker &amp; Escalator.</p>
            <p>Generated at: {generated_at}</p>
        </div>
    </body>
    </html>
    """


# ========== Circuit Breaker ==========

class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


# ========== Channels ==========

class NotificationChannel(ABC):
    """A single delivery route for formatted notifications."""

    name: str = "channel"

    @abstractmethod
    async def send(self, subject: str, message: str, tier: EscalationTier) -> bool:
        """Deliver one message. Returns True when delivered."""

    async def close(self) -> None:
        """Release transport resources."""


class SlackChannel(NotificationChannel):
    """
    Slack webhook channel with circuit breaker and retry logic.

    Handles sending alerts to Slack with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling
    """

    name = "slack"

    def __init__(
        self,
        webhook_url: str,
        channel: Optional[str] = None,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self._webhook_url = webhook_url
        self._channel = channel
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay
        self._http_client = http_client
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def build_payload(self, subject: str, message: str, tier: EscalationTier) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": subject,
            "attachments": [{
                "color": SLACK_COLORS.get(tier, "good"),
                "text": message,
                "ts": int(time.time())
            }]
        }
        if self._channel:
            payload["channel"] = self._channel
        return payload

    async def send(self, subject: str, message: str, tier: EscalationTier) -> bool:
        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping Slack notification",
                extra={"tier": tier.label}
            )
            return False

        payload = self.build_payload(subject, message, tier)

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=payload)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info("Slack notification sent", extra={"tier": tier.label})
                    return True

                logger.warning(
                    "Slack webhook returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Slack notification failed",
                    extra={"error": str(e), "attempt": attempt + 1, "tier": tier.label}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_base_delay * 2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class EmailChannel(NotificationChannel):
    """SMTP channel sending a plain-text + HTML email per batch."""

    name = "email"

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        recipient: Optional[str] = None,
        timeout_seconds: float = 20.0
    ):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._recipient = recipient or user
        self._timeout = timeout_seconds

    def build_message(self, subject: str, message: str, tier: EscalationTier) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._user
        msg["To"] = self._recipient
        msg.set_content(message)
        msg.add_alternative(
            format_email_html(subject, message, TIER_COLORS.get(tier, "#6c757d")),
            subtype="html"
        )
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as s:
            s.starttls()
            s.login(self._user, self._password)
            s.send_message(msg)

    async def send(self, subject: str, message: str, tier: EscalationTier) -> bool:
        msg = self.build_message(subject, message, tier)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email notification", extra={"error": str(e)})
            return False

        logger.info("Email notification sent", extra={"tier": tier.label})
        return True


# ========== Dispatcher ==========

class MultiChannelDispatcher(INotificationDispatcher):
    """
    Formats a tier batch once and sends it to every configured channel.

    Channels are tried concurrently and independently; the batch counts as
    delivered when at least one channel accepted it.
    """

    def __init__(self, channels: Optional[List[NotificationChannel]] = None):
        self._channels = list(channels or [])

    @property
    def channel_names(self) -> List[str]:
        return [channel.name for channel in self._channels]

    async def dispatch(self, tier: EscalationTier, batch: Sequence[EscalationItem]) -> bool:
        subject = batch_subject(tier, len(batch))
        message = format_batch_message(tier, batch)
        return await self._send_all(subject, message, tier)

    async def send_test_notification(self) -> bool:
        logger.info("Sending test notifications")
        return await self._send_all(
            "🧪 SLA Tracker Test Notification",
            "This is a test notification to verify the notification system is working correctly.",
            EscalationTier.WARNING
        )

    async def _send_all(self, subject: str, message: str, tier: EscalationTier) -> bool:
        if not self._channels:
            logger.warning("No notification channels configured. Skipping notification.")
            return True

        results = await asyncio.gather(
            *(channel.send(subject, message, tier) for channel in self._channels),
            return_exceptions=True
        )

        delivered = False
        for channel, result in zip(self._channels, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"{channel.name} channel raised while sending",
                    extra={"channel": channel.name, "error": str(result)}
                )
            elif result:
                delivered = True
        return delivered

    async def close(self) -> None:
        for channel in self._channels:
            await channel.close()


def build_dispatcher(config: Settings) -> MultiChannelDispatcher:
    """Wire the channels that have complete configuration."""
    channels: List[NotificationChannel] = []

    if config.slack_webhook_url:
        channels.append(SlackChannel(
            webhook_url=config.slack_webhook_url,
            channel=config.slack_channel,
            timeout_seconds=config.slack_timeout_seconds
        ))

    if config.smtp_host and config.smtp_user and config.smtp_pass:
        channels.append(EmailChannel(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_pass,
            recipient=config.notification_email,
            timeout_seconds=config.smtp_timeout_seconds
        ))
        logger.info("Email transporter initialized")
    else:
        logger.warning("Email configuration incomplete. Email notifications will be disabled.")

    return MultiChannelDispatcher(channels)
