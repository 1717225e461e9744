"""
SLA Application Services
=========================

Application services orchestrate one evaluation cycle: fetch tickets,
evaluate and classify each one, partition them into tier batches and hand
every non-empty batch to the notification dispatcher.

Following SOLID principles:
- Single Responsibility: aggregation and cycle control are separate services
- Dependency Inversion: depend on source/dispatcher abstractions, not transports
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from sla_escalator.core import DispatchFailure, InvalidTimestamp, SourceFailure
from sla_escalator.shared.infrastructure.logging import get_logger, log_latency
from sla_escalator.sla.domain import (
    Clock,
    CycleBatch,
    DEFAULT_FUTURE_TOLERANCE,
    EscalationClassifier,
    EscalationItem,
    EscalationTier,
    SLAEvaluator,
    SLAPolicy,
    SLAStatus,
    SkippedTicket,
    Ticket,
)

logger = get_logger(__name__)

EvaluateFn = Callable[[Ticket, SLAPolicy, datetime], SLAStatus]
ClassifyFn = Callable[[SLAStatus, SLAPolicy], EscalationTier]


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class ITicketSource(ABC):
    """Interface for the supplier of active, normalized tickets."""

    @abstractmethod
    async def fetch_tickets(self) -> List[Ticket]:
        """Fetch the tickets to evaluate. May raise on failure."""


class INotificationDispatcher(ABC):
    """Interface for delivering one tier batch."""

    @abstractmethod
    async def dispatch(self, tier: EscalationTier, batch: Sequence[EscalationItem]) -> bool:
        """
        Deliver a whole tier batch, preserving its order.

        Returns False (or raises) when delivery failed.
        """


# ========== Cycle Aggregation ==========

class CycleAggregator:
    """
    Partitions a ticket list into tier batches.

    The partition is stable: inside each tier, tickets keep the order in
    which the source produced them.
    """

    def __init__(
        self,
        evaluate: Optional[EvaluateFn] = None,
        classify: ClassifyFn = EscalationClassifier.classify,
        future_tolerance: timedelta = DEFAULT_FUTURE_TOLERANCE
    ):
        if evaluate is None:
            def evaluate(ticket: Ticket, policy: SLAPolicy, now: datetime) -> SLAStatus:
                return SLAEvaluator.evaluate(ticket, policy, now, future_tolerance)
        self._evaluate = evaluate
        self._classify = classify

    def aggregate(
        self,
        tickets: Iterable[Ticket],
        policy: SLAPolicy,
        now: datetime
    ) -> CycleBatch:
        """
        Evaluate and classify every ticket at the same instant.

        Tickets whose timestamp cannot be evaluated are recorded in
        ``skipped`` and logged; they never abort the cycle.
        """
        batch = CycleBatch()

        for ticket in tickets:
            try:
                status = self._evaluate(ticket, policy, now)
            except InvalidTimestamp as e:
                logger.warning(
                    "Skipping ticket with invalid timestamp",
                    extra={"ticket_id": ticket.id, "reason": e.reason}
                )
                batch.skipped.append(SkippedTicket(ticket_id=ticket.id, reason=e.reason))
                continue

            tier = self._classify(status, policy)
            batch.add(tier, EscalationItem(ticket, status))
            _log_classification(ticket, tier, status)

        return batch


def _log_classification(ticket: Ticket, tier: EscalationTier, status: SLAStatus) -> None:
    if tier == EscalationTier.VIOLATION:
        logger.warning(
            f"SLA VIOLATION: Ticket {ticket.id} - {status.hours_overdue:.2f} hours overdue",
            extra={"ticket_id": ticket.id, "tier": tier.label}
        )
    elif tier == EscalationTier.CRITICAL:
        logger.warning(
            f"CRITICAL SLA WARNING: Ticket {ticket.id} - "
            f"{status.percentage_used * 100:.1f}% of SLA time used",
            extra={"ticket_id": ticket.id, "tier": tier.label}
        )
    elif tier == EscalationTier.WARNING:
        logger.info(
            f"SLA WARNING: Ticket {ticket.id} - "
            f"{status.percentage_used * 100:.1f}% of SLA time used",
            extra={"ticket_id": ticket.id, "tier": tier.label}
        )


# ========== Cycle Runner ==========

class RunnerState(str, Enum):
    """Cycle runner states."""
    IDLE = "idle"
    RUNNING = "running"


class CycleOutcome(str, Enum):
    """How a trigger ended."""
    COMPLETED = "completed"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass
class CycleReport:
    """Result of one trigger of the cycle runner."""
    outcome: CycleOutcome
    started_at: datetime
    finished_at: Optional[datetime] = None
    ticket_count: int = 0
    batch: Optional[CycleBatch] = None
    dispatched: List[EscalationTier] = field(default_factory=list)
    dispatch_failures: List[DispatchFailure] = field(default_factory=list)
    error: Optional[SourceFailure] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "outcome": self.outcome.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "ticket_count": self.ticket_count,
            "summary": self.batch.counts() if self.batch else {},
            "dispatched": [tier.label for tier in self.dispatched],
            "dispatch_failures": [failure.message for failure in self.dispatch_failures],
            "skipped": [
                {"ticket_id": s.ticket_id, "reason": s.reason}
                for s in (self.batch.skipped if self.batch else [])
            ],
            "error": self.error.message if self.error else None,
        }


class CycleRunner:
    """
    Runs evaluation cycles with single-flight control.

    State machine: IDLE --trigger--> RUNNING --done/failed--> IDLE.
    A trigger that arrives while a cycle is RUNNING is dropped on the spot:
    it is not queued and it does not disturb the running cycle.
    """

    def __init__(
        self,
        ticket_source: ITicketSource,
        policy: SLAPolicy,
        clock: Clock,
        dispatcher: INotificationDispatcher,
        aggregator: Optional[CycleAggregator] = None
    ):
        self._source = ticket_source
        self._policy = policy
        self._clock = clock
        self._dispatcher = dispatcher
        self._aggregator = aggregator or CycleAggregator()

        self._state = RunnerState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def policy(self) -> SLAPolicy:
        return self._policy

    def _try_start(self) -> bool:
        with self._state_lock:
            if self._state is RunnerState.RUNNING:
                return False
            self._state = RunnerState.RUNNING
            return True

    def _finish(self) -> None:
        with self._state_lock:
            self._state = RunnerState.IDLE

    async def run_cycle(self) -> CycleReport:
        """
        Run one fetch → evaluate → classify → aggregate → dispatch cycle.

        Returns:
            CycleReport; outcome DROPPED when another cycle was running,
            FAILED when the ticket source failed, COMPLETED otherwise
            (dispatch failures are listed in the report)
        """
        started_at = self._clock.now()

        if not self._try_start():
            logger.info("SLA cycle already running, dropping trigger")
            return CycleReport(outcome=CycleOutcome.DROPPED, started_at=started_at)

        try:
            logger.info("Starting SLA check")
            return await self._run(started_at)
        finally:
            self._finish()

    async def _run(self, started_at: datetime) -> CycleReport:
        try:
            tickets = list(await self._source.fetch_tickets())
        except Exception as e:
            failure = e if isinstance(e, SourceFailure) else SourceFailure(
                str(e) or e.__class__.__name__,
                {"error_type": e.__class__.__name__}
            )
            logger.error(
                "SLA cycle aborted: ticket source failed",
                extra={"error": failure.message}
            )
            return CycleReport(
                outcome=CycleOutcome.FAILED,
                started_at=started_at,
                finished_at=self._clock.now(),
                error=failure
            )

        logger.info(f"Loaded {len(tickets)} tickets for SLA monitoring")

        now = self._clock.now()
        with log_latency(logger, "sla_aggregation", tickets=len(tickets)):
            batch = self._aggregator.aggregate(tickets, self._policy, now)

        report = CycleReport(
            outcome=CycleOutcome.COMPLETED,
            started_at=started_at,
            ticket_count=len(tickets),
            batch=batch
        )

        for tier, items in batch.escalations():
            failure = await self._dispatch(tier, items)
            if failure is None:
                report.dispatched.append(tier)
            else:
                report.dispatch_failures.append(failure)

        report.finished_at = self._clock.now()
        counts = batch.counts()
        logger.info(
            f"SLA check completed. Violations: {counts['violations']}, "
            f"Critical: {counts['criticals']}, Warnings: {counts['warnings']}",
            extra=counts
        )
        return report

    async def _dispatch(
        self,
        tier: EscalationTier,
        items: List[EscalationItem]
    ) -> Optional[DispatchFailure]:
        """Hand one tier batch to the dispatcher; failures are reported, never retried."""
        try:
            delivered = await self._dispatcher.dispatch(tier, list(items))
        except Exception as e:
            failure = e if isinstance(e, DispatchFailure) else DispatchFailure(
                tier.label, str(e) or e.__class__.__name__
            )
        else:
            if delivered is not False:
                return None
            failure = DispatchFailure(tier.label, "dispatcher reported failure")

        logger.error(
            "Failed to dispatch SLA notifications",
            extra={"tier": tier.label, "tickets": len(items), "error": failure.message}
        )
        return failure
