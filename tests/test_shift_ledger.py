"""Tests for shift-scoped persistence (readings, rates, stock entries)."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from models import NozzleReading, ProductRate, ShiftType, StockEntry
from shift_ledger import ShiftLedger

from conftest import SHIFT_DATE


def _reading_data(outlet, **kw):
    data = {
        "attendant_id": outlet["ravi"].id,
        "previous_reading": 1000.0,
        "current_reading": 1150.0,
        "testing": 5.0,
        "cash_sales": 5000.0,
        "upi_sales": 9000.0,
    }
    data.update(kw)
    return data


def test_upsert_reading_creates_then_updates_same_row(session, outlet):
    oid = outlet["outlet"].id
    key = (outlet["nozzle_petrol"].id, "morning", SHIFT_DATE)

    first = ShiftLedger.upsert_reading(session, oid, key, _reading_data(outlet), username="mgr")
    second = ShiftLedger.upsert_reading(
        session, oid, key, _reading_data(outlet, current_reading=1200.0), username="mgr2"
    )

    assert first.id == second.id
    assert session.query(NozzleReading).count() == 1
    assert second.current_reading == 1200.0
    assert second.created_by == "mgr"
    assert second.updated_by == "mgr2"


def test_upsert_reading_ignores_unknown_fields(session, outlet):
    oid = outlet["outlet"].id
    row = ShiftLedger.upsert_reading(
        session, oid, (outlet["nozzle_petrol"].id, ShiftType.MORNING, SHIFT_DATE),
        _reading_data(outlet, retail_outlet_id=999, bogus=1),
    )
    assert row.retail_outlet_id == oid


def test_to_reading_record_resolves_product_and_attendant(session, outlet):
    oid = outlet["outlet"].id
    row = ShiftLedger.upsert_reading(
        session, oid, (outlet["nozzle_diesel"].id, "evening", SHIFT_DATE), _reading_data(outlet)
    )
    record = ShiftLedger.to_reading_record(row)

    assert record.product_id == outlet["diesel"].id
    assert record.attendant_name == "Ravi"
    assert record.shift_type is ShiftType.EVENING
    assert record.actual_proceeds == 14000.0


def test_list_readings_scopes_by_shift_and_date(session, outlet):
    oid = outlet["outlet"].id
    n1 = outlet["nozzle_petrol"].id
    ShiftLedger.upsert_reading(session, oid, (n1, "morning", SHIFT_DATE), _reading_data(outlet))
    ShiftLedger.upsert_reading(session, oid, (n1, "evening", SHIFT_DATE), _reading_data(outlet))
    ShiftLedger.upsert_reading(session, oid, (n1, "morning", SHIFT_DATE + timedelta(days=1)), _reading_data(outlet))

    assert len(ShiftLedger.list_readings(session, oid, "morning", SHIFT_DATE)) == 1
    assert len(ShiftLedger.list_readings_for_date(session, oid, SHIFT_DATE)) == 2
    assert len(ShiftLedger.list_readings_between(session, oid, SHIFT_DATE, SHIFT_DATE + timedelta(days=1))) == 3
    assert ShiftLedger.list_readings(session, oid + 1, "morning", SHIFT_DATE) == []


def test_find_last_reading_uses_creation_order(session, outlet):
    oid = outlet["outlet"].id
    n1 = outlet["nozzle_petrol"].id
    older = ShiftLedger.upsert_reading(session, oid, (n1, "morning", SHIFT_DATE), _reading_data(outlet))
    newer = ShiftLedger.upsert_reading(
        session, oid, (n1, "evening", SHIFT_DATE),
        _reading_data(outlet, previous_reading=1150.0, current_reading=1300.0),
    )
    older.created_at = datetime(2024, 5, 10, 6, 0)
    newer.created_at = datetime(2024, 5, 10, 14, 0)
    session.commit()

    assert ShiftLedger.find_last_reading(session, oid, n1).id == newer.id
    assert ShiftLedger.find_last_reading(session, oid, outlet["nozzle_diesel"].id) is None


def test_upsert_product_rate_keeps_one_row_per_slot(session, outlet):
    oid = outlet["outlet"].id
    pid = outlet["petrol"].id

    ShiftLedger.upsert_product_rate(session, oid, pid, SHIFT_DATE, "morning", {"rate": 100.0})
    row = ShiftLedger.upsert_product_rate(
        session, oid, pid, SHIFT_DATE, "morning",
        {"rate": 101.5, "observed_density": 750.0, "observed_temperature": 25.0, "density_at_15c": 756.0},
    )

    assert session.query(ProductRate).count() == 1
    assert row.rate == 101.5
    rates = ShiftLedger.list_product_rates(session, oid, SHIFT_DATE, "morning")
    assert [ShiftLedger.to_rate_record(r).product_name for r in rates] == ["Petrol"]


def test_last_product_rates_picks_latest_slot_not_after_current(session, outlet):
    oid = outlet["outlet"].id
    pid = outlet["petrol"].id
    ShiftLedger.upsert_product_rate(session, oid, pid, SHIFT_DATE - timedelta(days=1), "night", {"rate": 98.0})
    ShiftLedger.upsert_product_rate(session, oid, pid, SHIFT_DATE, "morning", {"rate": 99.0})
    ShiftLedger.upsert_product_rate(session, oid, pid, SHIFT_DATE, "night", {"rate": 105.0})

    assert ShiftLedger.last_product_rates(session, oid, SHIFT_DATE, "evening")[pid].rate == 99.0
    assert ShiftLedger.last_product_rates(session, oid, SHIFT_DATE, "night")[pid].rate == 105.0
    assert ShiftLedger.last_product_rates(session, oid, SHIFT_DATE - timedelta(days=1), "morning") == {}


def test_upsert_stock_entry(session, outlet):
    oid = outlet["outlet"].id
    tid = outlet["tank_petrol"].id

    ShiftLedger.upsert_stock_entry(session, oid, tid, "morning", SHIFT_DATE, {"opening_stock": 12000.0})
    row = ShiftLedger.upsert_stock_entry(
        session, oid, tid, "morning", SHIFT_DATE,
        {"receipt": 8000.0, "invoice_value": 760000.0, "manager_id": outlet["manager"].id},
    )

    assert session.query(StockEntry).count() == 1
    assert row.opening_stock == 12000.0
    assert row.receipt == 8000.0
    assert row.manager_id == outlet["manager"].id
    assert len(ShiftLedger.list_stock_entries(session, oid, "morning", SHIFT_DATE)) == 1


def test_setup_lists(session, outlet):
    oid = outlet["outlet"].id
    outlet["anita"].is_active = False
    session.commit()

    assert [n.nozzle_number for n in ShiftLedger.list_nozzles(session, oid)] == [1, 2]
    assert [a.name for a in ShiftLedger.list_attendants(session, oid)] == ["Ravi"]
    assert [a.name for a in ShiftLedger.list_attendants(session, oid, active_only=False)] == ["Anita", "Ravi"]
    assert [t.tank_number for t in ShiftLedger.list_tanks(session, oid)] == ["T1", "T2"]
    assert ShiftLedger.get_nozzle(session, oid + 1, outlet["nozzle_petrol"].id) is None
