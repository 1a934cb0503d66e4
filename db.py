# db.py
"""
Engine and session factory for FPMS.

DB_URL comes from the environment (.env is loaded); the default is a local
SQLite file. init_db() creates missing tables and adds columns introduced
after a database was first created.
"""
import os
from typing import Dict

from dotenv import load_dotenv
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from logger import log_info

load_dotenv()

DB_URL = os.getenv("DB_URL", "sqlite:///fpms.db")

# table -> {column: DDL type}; columns added after the first release
LATE_COLUMNS: Dict[str, Dict[str, str]] = {
    "tanks": {"length_m": "FLOAT", "diameter_m": "FLOAT"},
    "nozzle_readings": {"updated_by": "VARCHAR(100)", "product_id": "INTEGER"},
    "product_rates": {"density_at_15c": "FLOAT"},
}


def build_engine(url: str) -> Engine:
    """SQLite gets thread sharing; an in-memory URL keeps a single connection."""
    kwargs = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(DB_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

from models import Base  # noqa: E402


def get_session():
    return SessionLocal()


def init_db(bind: Engine = None):
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    add_late_columns(bind)


def add_late_columns(bind: Engine) -> int:
    """ALTER TABLE ... ADD COLUMN for any LATE_COLUMNS entry the table lacks."""
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())
    added = 0
    with bind.begin() as conn:
        for table, columns in LATE_COLUMNS.items():
            if table not in tables:
                continue
            existing = {c["name"] for c in inspector.get_columns(table)}
            for column, ddl in columns.items():
                if column not in existing:
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
                    log_info(f"Schema update: added {table}.{column}")
                    added += 1
    return added
