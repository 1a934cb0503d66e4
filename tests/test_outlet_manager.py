"""Tests for outlet setup CRUD."""

from __future__ import annotations

from datetime import date

import pytest

from models import Nozzle, Product, RecycleBinEntry, Staff, StaffRole, Tank
from outlet_manager import OutletManager
from recycle_bin import RecycleBinManager


def test_create_outlet_returns_dict(session, outlet):
    created = OutletManager.create_outlet(session, outlet["dealer"].id, "  City Fuels ", sap_code="RO2002")
    assert created["name"] == "City Fuels"
    assert OutletManager.get_outlet(session, created["id"]).sap_code == "RO2002"

    with pytest.raises(ValueError):
        OutletManager.create_outlet(session, outlet["dealer"].id, "   ")


def test_update_outlet(session, outlet):
    updated = OutletManager.update_outlet(session, outlet["outlet"].id, name="Highway Fuels II", address=None)
    assert updated["name"] == "Highway Fuels II"
    with pytest.raises(ValueError):
        OutletManager.update_outlet(session, 9999, name="x")


def test_product_names_are_unique_per_outlet(session, outlet):
    oid = outlet["outlet"].id
    created = OutletManager.create_product(session, oid, "Speed", "premium", 110.0)
    assert created["fuel_type"] == "premium"

    with pytest.raises(ValueError, match="already exists"):
        OutletManager.create_product(session, oid, "Speed", "premium")
    with pytest.raises(ValueError, match="Unknown fuel type"):
        OutletManager.create_product(session, oid, "Kerosene", "kerosene")
    with pytest.raises(ValueError):
        OutletManager.create_product(session, oid, "Cheap", "petrol", -1)


def test_update_product(session, outlet):
    oid = outlet["outlet"].id
    updated = OutletManager.update_product(session, oid, outlet["petrol"].id, price_per_liter=102.0, is_active=False)
    assert updated["price_per_liter"] == 102.0
    assert [p.name for p in OutletManager.get_products(session, oid)] == ["Diesel"]


def test_tank_numbers_are_unique_per_outlet(session, outlet):
    oid = outlet["outlet"].id
    pid = outlet["petrol"].id

    with pytest.raises(ValueError, match="already exists"):
        OutletManager.create_tank(session, oid, "T1", pid, 10000)
    with pytest.raises(ValueError, match="capacity"):
        OutletManager.create_tank(session, oid, "T3", pid, 0)
    with pytest.raises(ValueError, match="exceed"):
        OutletManager.create_tank(session, oid, "T3", pid, 1000, current_stock=2000)

    created = OutletManager.create_tank(session, oid, "T3", pid, 15000, current_stock=500, length_m=6.0, diameter_m=2.4)
    assert created["minimum_level"] == 500.0

    with pytest.raises(ValueError, match="already exists"):
        OutletManager.update_tank(session, oid, created["id"], tank_number="T1")
    assert OutletManager.update_tank(session, oid, created["id"], current_stock=9000)["current_stock"] == 9000


def test_nozzle_follows_tank_product(session, outlet):
    oid = outlet["outlet"].id
    unit = OutletManager.create_dispensing_unit(session, oid, "DU-2", brand="Tokheim")

    nozzle = OutletManager.create_nozzle(
        session, oid, unit["id"], outlet["tank_diesel"].id, 1, calibration_valid_until=date(2025, 1, 1)
    )
    assert nozzle["product_id"] == outlet["diesel"].id

    moved = OutletManager.update_nozzle(session, oid, nozzle["id"], tank_id=outlet["tank_petrol"].id)
    assert moved["product_id"] == outlet["petrol"].id


def test_nozzle_numbers_are_unique_per_unit(session, outlet):
    oid = outlet["outlet"].id
    with pytest.raises(ValueError, match="already exists"):
        OutletManager.create_nozzle(session, oid, outlet["unit"].id, outlet["tank_petrol"].id, 1)
    with pytest.raises(ValueError):
        OutletManager.create_nozzle(session, oid, outlet["unit"].id, outlet["tank_petrol"].id, 0)

    other = OutletManager.create_dispensing_unit(session, oid, "DU-9")
    OutletManager.create_nozzle(session, oid, other["id"], outlet["tank_petrol"].id, 1)
    assert session.query(Nozzle).filter(Nozzle.nozzle_number == 1).count() == 2

    with pytest.raises(ValueError, match="already exists"):
        OutletManager.create_dispensing_unit(session, oid, "DU-9")


def test_create_staff_roles(session, outlet):
    oid = outlet["outlet"].id
    attendant = OutletManager.create_staff(session, oid, "Kiran", "attendant")
    assert attendant["role"] == "attendant"
    assert session.query(Staff).filter_by(id=attendant["id"]).one().password_hash is None

    with pytest.raises(ValueError, match="phone"):
        OutletManager.create_staff(session, oid, "Meena", "manager", password="secret123")
    with pytest.raises(ValueError):
        OutletManager.create_staff(session, oid, "Meena", "manager", phone_number="9000000002", password="short")
    with pytest.raises(ValueError, match="Invalid role"):
        OutletManager.create_staff(session, oid, "Meena", "cashier")

    manager = OutletManager.create_staff(session, oid, "Meena", "manager", "9000000002", "secret123")
    assert manager["role"] == "manager"
    assert [s.name for s in OutletManager.get_staff(session, oid, role="manager")] == ["Meena", "Suresh"]

    toggled = OutletManager.toggle_staff_status(session, oid, manager["id"])
    assert toggled["is_active"] is False
    assert session.query(Staff).filter_by(role=StaffRole.MANAGER, is_active=True).count() == 1


def test_delete_archives_to_recycle_bin(session, outlet):
    oid = outlet["outlet"].id
    spare = OutletManager.create_product(session, oid, "Spare", "petrol")

    result = OutletManager.delete_record(session, oid, "Product", spare["id"], "dealer@example.com", reason="unused")

    assert session.query(Product).filter_by(id=spare["id"]).count() == 0
    entry = session.query(RecycleBinEntry).one()
    assert entry.id == result["bin_entry_id"]
    assert RecycleBinManager.load_payload(entry)["name"] == "Spare"
    assert RecycleBinManager.list_entries(session, oid)[0].resource_label == "Spare"


def test_delete_refuses_records_in_use(session, outlet):
    oid = outlet["outlet"].id
    with pytest.raises(ValueError, match="tank"):
        OutletManager.delete_record(session, oid, "Product", outlet["petrol"].id, "dealer")
    with pytest.raises(ValueError, match="nozzles"):
        OutletManager.delete_record(session, oid, "Tank", outlet["tank_petrol"].id, "dealer")
    with pytest.raises(ValueError, match="Cannot delete"):
        OutletManager.delete_record(session, oid, "RetailOutlet", oid, "dealer")

    OutletManager.delete_record(session, oid, "Nozzle", outlet["nozzle_petrol"].id, "dealer")
    OutletManager.delete_record(session, oid, "Tank", outlet["tank_petrol"].id, "dealer")
    assert session.query(Tank).filter_by(retail_outlet_id=oid).count() == 1
