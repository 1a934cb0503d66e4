"""Tests for restoring archived records."""

from __future__ import annotations

import pytest

from models import AuditLog, FuelType, NozzleReading, Product, RecycleBinEntry, ShiftType
from outlet_manager import OutletManager
from reconciliation import ShiftLockedError
from recycle_bin import RecycleBinManager
from shift_service import ShiftService

from conftest import SHIFT_DATE


def _reading_form(outlet):
    return {
        "nozzle_id": outlet["nozzle_petrol"].id,
        "attendant_id": outlet["ravi"].id,
        "previous_reading": "1000",
        "current_reading": "1150",
        "cash_sales": "14000",
    }


def _bin_entry(session):
    return session.query(RecycleBinEntry).one()


def test_restore_product(session, outlet):
    oid = outlet["outlet"].id
    spare = OutletManager.create_product(session, oid, "Spare", "premium", 120)
    OutletManager.delete_record(session, oid, "Product", spare["id"], "dealer@example.com")

    restored = RecycleBinManager.restore_entry(session, oid, _bin_entry(session).id, "dealer@example.com")

    assert restored.id == spare["id"]
    product = session.query(Product).filter_by(id=spare["id"]).one()
    assert product.fuel_type is FuelType.PREMIUM
    assert product.price_per_liter == pytest.approx(120)
    assert session.query(RecycleBinEntry).count() == 0
    assert session.query(AuditLog).filter_by(action="RESTORE").count() == 1


def test_restore_reading_keeps_shift_and_values(session, outlet):
    oid = outlet["outlet"].id
    service = ShiftService(session, oid, username="suresh")
    row, _ = service.record_reading(_reading_form(outlet), "morning", SHIFT_DATE)
    reading_id = row.id
    service.delete_reading(reading_id)

    RecycleBinManager.restore_entry(session, oid, _bin_entry(session).id, "dealer@example.com")

    reading = session.query(NozzleReading).filter_by(id=reading_id).one()
    assert reading.shift_type is ShiftType.MORNING
    assert reading.shift_date == SHIFT_DATE
    assert reading.current_reading == pytest.approx(1150)


def test_restore_reading_into_locked_shift_is_refused(session, outlet):
    oid = outlet["outlet"].id
    service = ShiftService(session, oid, username="suresh")
    row, _ = service.record_reading(_reading_form(outlet), "morning", SHIFT_DATE)
    service.delete_reading(row.id)
    service.record_reading(_reading_form(outlet), "evening", SHIFT_DATE)

    with pytest.raises(ShiftLockedError):
        RecycleBinManager.restore_entry(session, oid, _bin_entry(session).id, "dealer@example.com")
    assert session.query(RecycleBinEntry).count() == 1


def test_restore_clashing_product_is_refused(session, outlet):
    oid = outlet["outlet"].id
    spare = OutletManager.create_product(session, oid, "Spare", "petrol")
    OutletManager.delete_record(session, oid, "Product", spare["id"], "dealer@example.com")
    OutletManager.create_product(session, oid, "Spare", "petrol")

    with pytest.raises(ValueError):
        RecycleBinManager.restore_entry(session, oid, _bin_entry(session).id, "dealer@example.com")
    assert session.query(RecycleBinEntry).count() == 1


def test_restore_unknown_entry(session, outlet):
    with pytest.raises(ValueError, match="not found"):
        RecycleBinManager.restore_entry(session, outlet["outlet"].id, 999, "dealer@example.com")
