"""Tests for engine construction and late schema columns."""

from __future__ import annotations

from sqlalchemy import inspect, text
from sqlalchemy.pool import StaticPool

from db import add_late_columns, build_engine


def test_in_memory_engine_uses_single_connection():
    engine = build_engine("sqlite://")
    assert isinstance(engine.pool, StaticPool)


def test_schema_is_current_after_init(engine):
    assert add_late_columns(engine) == 0


def test_missing_late_column_is_added():
    engine = build_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE nozzle_readings (id INTEGER PRIMARY KEY)"))

    assert add_late_columns(engine) == 2
    columns = {c["name"] for c in inspect(engine).get_columns("nozzle_readings")}
    assert {"updated_by", "product_id"} <= columns
