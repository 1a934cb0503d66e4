"""
Recycle bin for deleted setup records and nozzle readings.

Deleting a Product, Tank, DispensingUnit, Nozzle or NozzleReading stores a
JSON snapshot of its columns first; restore_entry() rebuilds the row from
that snapshot under its original id.
"""

from __future__ import annotations

import enum
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, DateTime, Enum as SAEnum
from sqlalchemy.exc import IntegrityError
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session

from logger import log_info, log_warning
from models import DispensingUnit, Nozzle, NozzleReading, Product, RecycleBinEntry, Tank
from reconciliation import ShiftLockedError, shift_edit_lock
from security import SecurityManager
from shift_ledger import ShiftLedger

RESTORABLE = {
    "Product": Product,
    "Tank": Tank,
    "DispensingUnit": DispensingUnit,
    "Nozzle": Nozzle,
    "NozzleReading": NozzleReading,
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def _from_json(column, value: Any) -> Any:
    """Undo _json_default for one column."""
    if value is None:
        return None
    col_type = column.type
    if isinstance(col_type, SAEnum) and col_type.enum_class is not None:
        return col_type.enum_class(value)
    if isinstance(col_type, DateTime):
        return datetime.fromisoformat(value)
    if isinstance(col_type, Date):
        return date.fromisoformat(value)
    return value


class RecycleBinManager:

    @staticmethod
    def snapshot_record(record: Any) -> Dict[str, Any]:
        return {col.key: getattr(record, col.key) for col in sa_inspect(record.__class__).columns}

    @staticmethod
    def archive_record(
        session: Session,
        record: Any,
        resource_type: str,
        username: str,
        outlet_id: Optional[int] = None,
        reason: Optional[str] = None,
        label: Optional[str] = None,
    ) -> RecycleBinEntry:
        """Add the snapshot entry and delete the record; the caller commits."""
        snapshot = RecycleBinManager.snapshot_record(record)
        entry = RecycleBinEntry(
            resource_type=resource_type,
            resource_id=str(snapshot.get("id")),
            resource_label=label or str(snapshot.get("id")),
            payload_json=json.dumps(snapshot, default=_json_default),
            deleted_by=username or "unknown",
            retail_outlet_id=outlet_id,
            reason=reason,
        )
        session.add(entry)
        session.flush()
        session.delete(record)
        return entry

    @staticmethod
    def list_entries(session: Session, outlet_id: int, limit: int = 100) -> List[RecycleBinEntry]:
        return (
            session.query(RecycleBinEntry)
            .filter(RecycleBinEntry.retail_outlet_id == outlet_id)
            .order_by(RecycleBinEntry.deleted_at.desc(), RecycleBinEntry.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def load_payload(entry: RecycleBinEntry) -> Dict[str, Any]:
        return json.loads(entry.payload_json or "{}")

    @staticmethod
    def restore_entry(session: Session, outlet_id: int, entry_id: int, username: str) -> Any:
        """
        Recreate the archived row and drop its bin entry.

        Raises ValueError when the entry is unknown, its type cannot be
        restored, or the row would clash with existing data (same id, or a
        reading already recorded for that nozzle and shift). A reading whose
        shift is locked raises ShiftLockedError.
        """
        entry = session.query(RecycleBinEntry).filter(
            RecycleBinEntry.id == entry_id,
            RecycleBinEntry.retail_outlet_id == outlet_id,
        ).one_or_none()
        if entry is None:
            raise ValueError(f"Recycle bin entry {entry_id} not found")
        resource_type = entry.resource_type
        model = RESTORABLE.get(resource_type)
        if model is None:
            raise ValueError(f"Cannot restore resource type '{resource_type}'")

        payload = RecycleBinManager.load_payload(entry)
        columns = sa_inspect(model).columns
        values = {col.key: _from_json(col, payload[col.key]) for col in columns if col.key in payload}
        if model is NozzleReading:
            day_rows = ShiftLedger.list_readings_for_date(session, outlet_id, values["shift_date"])
            lock = shift_edit_lock(values["shift_type"], values["shift_date"], day_rows)
            if not lock.editable:
                raise ShiftLockedError(values["shift_type"], values["shift_date"], lock.blocking_shift)
        if session.get(model, values.get("id")) is not None:
            raise ValueError(f"{resource_type} ID {values.get('id')} already exists")

        record = model(**values)
        session.add(record)
        session.delete(entry)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            log_warning(f"Restore of bin entry {entry_id} rejected: {exc.orig}")
            raise ValueError(f"{resource_type} clashes with existing data") from exc

        log_info(f"{resource_type} {values.get('id')} restored from recycle bin by {username}")
        SecurityManager.log_audit(
            session, username, "RESTORE", resource_type=resource_type,
            resource_id=values.get("id"), details=f"Restored bin entry {entry_id}", outlet_id=outlet_id,
        )
        return record
