"""
SLA Ticket Sources
==================

Concrete ticket sources for the cycle runner.

FileTicketSource reads a helpdesk export (CSV or JSON), normalizes the
field names and yields only active tickets. Rows that cannot be used are
skipped with a warning; a missing or unreadable file fails the whole fetch.
"""

import asyncio
import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from sla_escalator.config import ACTIVE_STATUSES, VALID_PRIORITIES, Priority, TicketStatus
from sla_escalator.core import InvalidTimestamp, SourceFailure
from sla_escalator.shared.infrastructure.logging import get_logger
from sla_escalator.sla.application import (
    ITicketSource,
    SourceValidationResponse,
    TicketRecord,
)
from sla_escalator.sla.domain import Ticket, resolve_created_at

logger = get_logger(__name__)

SUPPORTED_SOURCE_TYPES = ("csv", "json")


def is_active_status(status: Optional[str]) -> bool:
    """Tickets without a status are treated as open."""
    if status is None:
        return True
    return status.strip().lower() in ACTIVE_STATUSES


class StaticTicketSource(ITicketSource):
    """Serves a fixed ticket list; used for ad-hoc evaluations."""

    def __init__(self, tickets: Sequence[Ticket]):
        self._tickets = list(tickets)

    async def fetch_tickets(self) -> List[Ticket]:
        return list(self._tickets)


class FileTicketSource(ITicketSource):
    """
    Ticket source backed by an exported file.

    Supported formats:
    - csv: one ticket per row, header names as exported
    - json: a list of tickets, or an object with a ``tickets`` or ``data`` list
    """

    def __init__(self, path: Path, source_type: str = "csv"):
        self._path = Path(path)
        self._source_type = source_type.strip().lower()

    @property
    def path(self) -> Path:
        return self._path

    async def fetch_tickets(self) -> List[Ticket]:
        """Read the export without blocking the event loop."""
        return await asyncio.to_thread(self.read_tickets)

    def read_tickets(self) -> List[Ticket]:
        """
        Read, normalize and filter tickets.

        Raises:
            SourceFailure: file missing, unsupported format or malformed JSON
        """
        full_path = self._path.resolve()
        if not full_path.exists():
            raise SourceFailure(f"Data source file not found: {full_path}")

        if self._source_type not in SUPPORTED_SOURCE_TYPES:
            raise SourceFailure(f"Unsupported data source type: {self._source_type}")

        logger.info(f"Reading tickets from {full_path} ({self._source_type})")

        if self._source_type == "csv":
            rows = self._read_csv(full_path)
        else:
            rows = self._read_json(full_path)

        tickets = []
        for row in rows:
            ticket = self._normalize(row)
            if ticket is not None:
                tickets.append(ticket)

        logger.info(
            f"Successfully loaded {len(tickets)} tickets from {self._source_type.upper()}",
            extra={"rows": len(rows), "tickets": len(tickets)}
        )
        return tickets

    def _read_csv(self, path: Path) -> List[dict]:
        try:
            with open(path, "r", newline="", encoding="utf-8-sig") as f:
                return list(csv.DictReader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SourceFailure(f"Error reading CSV file: {e}") from e

    def _read_json(self, path: Path) -> List[Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SourceFailure(f"Error reading JSON file: {e}") from e

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("tickets", "data"):
                if isinstance(data.get(key), list):
                    return data[key]

        raise SourceFailure(
            "Invalid JSON structure. Expected array of tickets "
            "or object with tickets/data array."
        )

    def _normalize(self, row: Any) -> Optional[Ticket]:
        """Turn one exported row into a Ticket, or None if it must be skipped."""
        if not isinstance(row, dict):
            logger.warning("Skipping ticket row that is not an object")
            return None

        # csv.DictReader files surplus cells under a None key
        row = {key: value for key, value in row.items() if isinstance(key, str)}

        try:
            record = TicketRecord.model_validate(row)
        except ValidationError as e:
            logger.warning(
                "Skipping invalid ticket row",
                extra={"error": str(e)}
            )
            return None

        for required in ("id", "created_at"):
            if not getattr(record, required):
                logger.warning(
                    f"Ticket missing required field '{required}'",
                    extra={"ticket_id": record.id}
                )
                return None

        if not is_active_status(record.status):
            logger.debug(
                f"Skipping closed/resolved ticket {record.id} with status: {record.status}"
            )
            return None

        priority = record.priority or Priority.MEDIUM
        if priority.lower() not in VALID_PRIORITIES:
            logger.warning(
                f"Unknown priority '{priority}' for ticket {record.id}, "
                "the default SLA applies"
            )

        ticket = Ticket(
            id=record.id,
            created_at=record.created_at,
            priority=priority,
            title=record.title,
            customer=record.customer,
            assignee=record.assignee or "unassigned",
            category=record.category or "general",
            status=record.status or TicketStatus.OPEN,
        )

        try:
            resolve_created_at(ticket)
        except InvalidTimestamp as e:
            logger.warning(
                f"Invalid date format for ticket {record.id}",
                extra={"ticket_id": record.id, "reason": e.reason}
            )
            return None

        return ticket

    async def validate(self) -> SourceValidationResponse:
        """Check that the export can be read and report what it holds."""
        try:
            tickets = await self.fetch_tickets()
        except SourceFailure as e:
            return SourceValidationResponse(is_valid=False, error=e.message)

        return SourceValidationResponse(
            is_valid=True,
            ticket_count=len(tickets),
            sample_ticket=asdict(tickets[0]) if tickets else None
        )
