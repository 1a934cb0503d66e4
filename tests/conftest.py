"""Shared fixtures: an in-memory database seeded with one outlet."""

from __future__ import annotations

import os
import tempfile
from datetime import date

os.environ.setdefault("FPMS_LOGS_DIR", os.path.join(tempfile.gettempdir(), "fpms-test-logs"))
os.environ.setdefault("DB_URL", "sqlite://")

import bcrypt
import pytest
from sqlalchemy.orm import sessionmaker

import auth
from db import build_engine, init_db
from models import (
    DispensingUnit, FuelType, Nozzle, Product, RetailOutlet, Staff, StaffRole, Tank, User,
)

SHIFT_DATE = date(2024, 5, 10)


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cheap salts so hashing does not dominate the run."""
    real_gensalt = bcrypt.gensalt
    monkeypatch.setattr(auth.bcrypt, "gensalt", lambda: real_gensalt(rounds=4))


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    s = Session()
    yield s
    s.close()


@pytest.fixture
def outlet(session):
    """
    Outlet with two products, two tanks, one dispensing unit carrying a
    petrol and a diesel nozzle, two attendants and one manager.
    """
    dealer = User(email="dealer@example.com", password_hash="x", full_name="Dealer")
    session.add(dealer)
    session.flush()

    ro = RetailOutlet(owner_id=dealer.id, name="Highway Fuels", sap_code="RO1001")
    session.add(ro)
    session.flush()

    petrol = Product(retail_outlet_id=ro.id, name="Petrol", fuel_type=FuelType.PETROL, price_per_liter=100.0)
    diesel = Product(retail_outlet_id=ro.id, name="Diesel", fuel_type=FuelType.DIESEL, price_per_liter=90.0)
    session.add_all([petrol, diesel])
    session.flush()

    t1 = Tank(retail_outlet_id=ro.id, product_id=petrol.id, tank_number="T1", capacity=20000, current_stock=12000)
    t2 = Tank(retail_outlet_id=ro.id, product_id=diesel.id, tank_number="T2", capacity=20000, current_stock=3000)
    session.add_all([t1, t2])
    session.flush()

    du = DispensingUnit(retail_outlet_id=ro.id, name="DU-1")
    session.add(du)
    session.flush()

    n1 = Nozzle(dispensing_unit_id=du.id, tank_id=t1.id, product_id=petrol.id, nozzle_number=1)
    n2 = Nozzle(dispensing_unit_id=du.id, tank_id=t2.id, product_id=diesel.id, nozzle_number=2)
    session.add_all([n1, n2])

    ravi = Staff(retail_outlet_id=ro.id, name="Ravi", role=StaffRole.ATTENDANT)
    anita = Staff(retail_outlet_id=ro.id, name="Anita", role=StaffRole.ATTENDANT)
    manager = Staff(retail_outlet_id=ro.id, name="Suresh", phone_number="9000000001", role=StaffRole.MANAGER)
    session.add_all([ravi, anita, manager])
    session.commit()

    return {
        "dealer": dealer,
        "outlet": ro,
        "petrol": petrol,
        "diesel": diesel,
        "tank_petrol": t1,
        "tank_diesel": t2,
        "unit": du,
        "nozzle_petrol": n1,
        "nozzle_diesel": n2,
        "ravi": ravi,
        "anita": anita,
        "manager": manager,
    }
