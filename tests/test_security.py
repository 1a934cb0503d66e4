"""Tests for the audit trail and recycle bin helpers."""

from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from models import AuditLog, ShiftType
from recycle_bin import RecycleBinManager, _json_default
from security import SecurityManager


def test_log_audit_writes_entry(session, outlet):
    oid = outlet["outlet"].id
    SecurityManager.log_audit(session, "suresh", "UPDATE", resource_type="ProductRate",
                              resource_id=7, details="x" * 600, outlet_id=oid)

    entry = session.query(AuditLog).one()
    assert entry.resource_id == "7"
    assert len(entry.details) == 500
    assert SecurityManager.recent_audit(session, oid)[0].id == entry.id


def test_log_audit_failure_is_logged_not_raised(session, monkeypatch):
    errors = []
    monkeypatch.setattr("security.log_error", errors.append)

    def boom():
        raise RuntimeError("db down")

    monkeypatch.setattr(session, "commit", boom)
    SecurityManager.log_audit(session, "suresh", "UPDATE")

    assert errors and "db down" in errors[0]


def test_json_default_handles_dates_and_enums():
    assert _json_default(date(2024, 5, 10)) == "2024-05-10"
    assert _json_default(datetime(2024, 5, 10, 6, 30)) == "2024-05-10T06:30:00"
    assert _json_default(ShiftType.NIGHT) == "night"


def test_load_payload_of_empty_entry():
    assert RecycleBinManager.load_payload(SimpleNamespace(payload_json=None)) == {}


def test_snapshot_record(outlet):
    snap = RecycleBinManager.snapshot_record(outlet["petrol"])
    assert snap["name"] == "Petrol"
    assert snap["price_per_liter"] == pytest.approx(100.0)
