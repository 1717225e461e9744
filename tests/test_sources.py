"""Tests for file-backed and static ticket sources."""

import asyncio
import json

import pytest

from sla_escalator.core import SourceFailure
from sla_escalator.sla.infrastructure import FileTicketSource, StaticTicketSource, is_active_status
from sla_escalator.sla.domain import Ticket

CSV_HEADER = "ticket_id,subject,priority,status,created_at,customer_name,assigned_to,category\n"


def _write(tmp_path, name: str, content: str):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def _read(path, source_type="csv"):
    return FileTicketSource(path, source_type).read_tickets()


def test_csv_rows_are_normalized(tmp_path):
    path = _write(tmp_path, "tickets.csv", CSV_HEADER + (
        "T-1,Login broken,High,open,2024-01-15T10:00:00Z,Acme,alice,auth\n"
        "T-2,Slow dashboard,,pending,2024-01-15T11:30:00Z,Globex,,\n"
    ))

    tickets = _read(path)

    assert [t.id for t in tickets] == ["T-1", "T-2"]
    first, second = tickets
    assert first.title == "Login broken"
    assert first.priority == "High"
    assert first.customer == "Acme"
    assert first.assignee == "alice"
    assert first.created_at == "2024-01-15T10:00:00Z"
    assert second.priority == "medium"
    assert second.assignee == "unassigned"
    assert second.category == "general"


def test_csv_with_byte_order_mark(tmp_path):
    path = tmp_path / "bom.csv"
    path.write_text("id,priority,created_at\nT-9,low,2024-01-15T10:00:00Z\n", encoding="utf-8-sig")

    assert [t.id for t in _read(path)] == ["T-9"]


@pytest.mark.parametrize("status", ["resolved", "closed", "Done"])
def test_inactive_tickets_are_filtered(tmp_path, status):
    path = _write(tmp_path, "tickets.csv", CSV_HEADER + (
        f"T-1,Old,high,{status},2024-01-15T10:00:00Z,Acme,bob,billing\n"
        "T-2,New,high,In-Progress,2024-01-15T10:00:00Z,Acme,bob,billing\n"
    ))

    assert [t.id for t in _read(path)] == ["T-2"]


def test_rows_without_status_count_as_open(tmp_path):
    path = _write(tmp_path, "tickets.csv", "id,priority,created_at\nT-1,high,2024-01-15T10:00:00Z\n")

    tickets = _read(path)

    assert tickets[0].status == "open"


def test_rows_missing_required_fields_are_skipped(tmp_path):
    path = _write(tmp_path, "tickets.csv", CSV_HEADER + (
        ",No id,high,open,2024-01-15T10:00:00Z,Acme,bob,auth\n"
        "T-2,No date,high,open,,Acme,bob,auth\n"
        "T-3,Bad date,high,open,last tuesday,Acme,bob,auth\n"
        "T-4,Good,high,open,2024-01-15T10:00:00Z,Acme,bob,auth\n"
    ))

    assert [t.id for t in _read(path)] == ["T-4"]


def test_unknown_priority_is_kept(tmp_path):
    path = _write(tmp_path, "tickets.csv", "id,priority,created_at\nT-1,urgent,2024-01-15T10:00:00Z\n")

    assert _read(path)[0].priority == "urgent"


def test_json_list_with_alternative_field_names(tmp_path):
    payload = [
        {"ticketId": 101, "title": "Refund", "Priority": "critical", "createdAt": "2024-01-15T10:00:00+02:00"},
        {"id": "T-2", "priority": "low", "timestamp": "2024-01-15T09:00:00Z", "status": "closed"},
        "not a ticket",
    ]
    path = _write(tmp_path, "tickets.json", json.dumps(payload))

    tickets = _read(path, "json")

    assert [t.id for t in tickets] == ["101"]
    assert tickets[0].priority == "critical"


@pytest.mark.parametrize("key", ["tickets", "data"])
def test_json_object_wrapping_ticket_list(tmp_path, key):
    payload = {key: [{"id": "T-1", "priority": "high", "created_at": "2024-01-15T10:00:00Z"}]}
    path = _write(tmp_path, "tickets.json", json.dumps(payload))

    assert [t.id for t in _read(path, "json")] == ["T-1"]


def test_json_with_wrong_structure_fails(tmp_path):
    path = _write(tmp_path, "tickets.json", json.dumps({"items": []}))

    with pytest.raises(SourceFailure, match="Invalid JSON structure"):
        _read(path, "json")


def test_malformed_json_fails(tmp_path):
    path = _write(tmp_path, "tickets.json", "[{\"id\": ")

    with pytest.raises(SourceFailure, match="Error reading JSON file"):
        _read(path, "json")


def test_missing_file_fails(tmp_path):
    with pytest.raises(SourceFailure, match="not found"):
        _read(tmp_path / "missing.csv")


def test_unsupported_type_fails(tmp_path):
    path = _write(tmp_path, "tickets.xml", "<tickets/>")

    with pytest.raises(SourceFailure, match="Unsupported data source type"):
        _read(path, "XML")


def test_fetch_tickets_runs_off_the_event_loop(tmp_path):
    path = _write(tmp_path, "tickets.csv", "id,priority,created_at\nT-1,high,2024-01-15T10:00:00Z\n")

    tickets = asyncio.run(FileTicketSource(path).fetch_tickets())

    assert [t.id for t in tickets] == ["T-1"]


def test_validate_reports_count_and_sample(tmp_path):
    path = _write(tmp_path, "tickets.csv", CSV_HEADER + (
        "T-1,Login broken,high,open,2024-01-15T10:00:00Z,Acme,alice,auth\n"
        "T-2,Slow,low,open,2024-01-15T10:00:00Z,Acme,alice,auth\n"
    ))

    result = asyncio.run(FileTicketSource(path).validate())

    assert result.is_valid is True
    assert result.ticket_count == 2
    assert result.sample_ticket["id"] == "T-1"
    assert result.error is None


def test_validate_reports_failure(tmp_path):
    result = asyncio.run(FileTicketSource(tmp_path / "missing.json", "json").validate())

    assert result.is_valid is False
    assert "not found" in result.error


def test_static_source_returns_copy():
    tickets = [Ticket(id="T-1", created_at="2024-01-15T10:00:00Z")]
    source = StaticTicketSource(tickets)

    fetched = asyncio.run(source.fetch_tickets())
    fetched.clear()

    assert [t.id for t in asyncio.run(source.fetch_tickets())] == ["T-1"]


@pytest.mark.parametrize("status,expected", [
    (None, True),
    ("open", True),
    (" Pending ", True),
    ("in_progress", True),
    ("resolved", False),
    ("cancelled", False),
])
def test_is_active_status(status, expected):
    assert is_active_status(status) is expected
