# shift_service.py
"""
Shift workflows for a manager: rates & density, nozzle readings, stock
entries and the per-attendant summary.

The selected (shift_type, shift_date) pair is passed into every call; nothing
here remembers a "current shift". The summary is recomputed from stored
readings on every call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from sqlalchemy.orm import Session

from logger import log_info, log_warning
from models import NozzleReading, ProductRate, ShiftType, StaffRole, Staff, StockEntry, Product
from reconciliation import (
    AttendantSummary, EditLock, Proceeds, RateRecord, ReadingRecord, ShiftLockedError,
    ShiftTotals, aggregate_by_attendant, compute_proceeds, find_rate,
    maybe_density_at_15c, normalize_shift_type, parse_amount, reading_from_form,
    shift_edit_lock, shift_totals,
)
from recycle_bin import RecycleBinManager
from security import SecurityManager
from shift_ledger import ShiftLedger

ShiftLike = Union[ShiftType, str]


@dataclass
class OpeningReading:
    """Pre-fill for a nozzle's opening reading"""
    value: Optional[float]
    verified: bool
    source_reading_id: Optional[int] = None


@dataclass
class ShiftSummary:
    shift_type: ShiftType
    shift_date: date
    attendants: List[AttendantSummary]
    totals: ShiftTotals


def _optional_amount(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_amount(value)


class ShiftService:
    """Manager-side shift operations for one outlet"""

    def __init__(self, session: Session, outlet_id: int, username: str = "system"):
        self.session = session
        self.outlet_id = outlet_id
        self.username = username

    # ------------- lock -------------
    def edit_lock(self, shift_type: ShiftLike, shift_date: date) -> EditLock:
        rows = ShiftLedger.list_readings_for_date(self.session, self.outlet_id, shift_date)
        return shift_edit_lock(shift_type, shift_date, rows)

    def _check_lock(self, shift_type: ShiftType, shift_date: date) -> None:
        lock = self.edit_lock(shift_type, shift_date)
        if not lock.editable:
            log_warning(
                f"Rejected edit on locked {shift_type.value} shift {shift_date} "
                f"(outlet {self.outlet_id}, by {self.username})"
            )
            raise ShiftLockedError(shift_type, shift_date, lock.blocking_shift)

    # ------------- rates -------------
    def rates_for(self, shift_type: ShiftLike, shift_date: date) -> List[RateRecord]:
        rows = ShiftLedger.list_product_rates(self.session, self.outlet_id, shift_date, shift_type)
        return [ShiftLedger.to_rate_record(r) for r in rows]

    def rate_form_defaults(self, shift_type: ShiftLike, shift_date: date) -> List[Dict[str, Any]]:
        """One row per active product, pre-filled from the latest earlier rate"""
        last = ShiftLedger.last_product_rates(self.session, self.outlet_id, shift_date, shift_type)
        products = (
            self.session.query(Product)
            .filter(Product.retail_outlet_id == self.outlet_id, Product.is_active == True)  # noqa: E712
            .order_by(Product.name)
            .all()
        )
        rows = []
        for p in products:
            r = last.get(p.id)
            rows.append({
                "product_id": p.id,
                "product_name": p.name,
                "rate": float(r.rate) if r is not None else float(p.price_per_liter or 0.0),
                "observed_density": r.observed_density if r is not None else None,
                "observed_temperature": r.observed_temperature if r is not None else None,
                "density_at_15c": r.density_at_15c if r is not None else None,
                "last_updated": (r.updated_at or r.created_at) if r is not None else None,
            })
        return rows

    def save_rates(
        self, shift_type: ShiftLike, shift_date: date, rates: Iterable[Mapping[str, Any]]
    ) -> List[ProductRate]:
        st_type = normalize_shift_type(shift_type)
        saved = []
        for item in rates:
            density = _optional_amount(item.get("observed_density"))
            temperature = _optional_amount(item.get("observed_temperature"))
            row = ShiftLedger.upsert_product_rate(
                self.session,
                self.outlet_id,
                int(item["product_id"]),
                shift_date,
                st_type,
                {
                    "rate": parse_amount(item.get("rate")),
                    "observed_density": density,
                    "observed_temperature": temperature,
                    "density_at_15c": maybe_density_at_15c(density, temperature),
                },
            )
            saved.append(row)

        SecurityManager.log_audit(
            self.session, self.username, "UPDATE",
            resource_type="ProductRate",
            details=f"Saved {len(saved)} rate(s) for {st_type.value} shift {shift_date.isoformat()}",
            outlet_id=self.outlet_id,
        )
        return saved

    # ------------- readings -------------
    def opening_reading_for(self, nozzle_id: int) -> OpeningReading:
        last = ShiftLedger.find_last_reading(self.session, self.outlet_id, nozzle_id)
        if last is None:
            return OpeningReading(value=None, verified=False)
        return OpeningReading(
            value=float(last.current_reading),
            verified=True,
            source_reading_id=last.id,
        )

    def reading_form_defaults(
        self, nozzle_id: int, shift_type: ShiftLike, shift_date: date
    ) -> Dict[str, Any]:
        """
        Values to show when a nozzle is picked: the saved reading when this
        shift already has one, otherwise a blank form whose opening reading
        comes from the nozzle's last closing reading.
        """
        existing = ShiftLedger.get_reading(self.session, self.outlet_id, nozzle_id, shift_type, shift_date)
        if existing is not None:
            return {
                "existing": True,
                "reading_id": existing.id,
                "attendant_id": existing.attendant_id,
                "previous_reading": existing.previous_reading,
                "current_reading": existing.current_reading,
                "testing": existing.testing or 0.0,
                "cash_sales": existing.cash_sales or 0.0,
                "credit_sales": existing.credit_sales or 0.0,
                "upi_sales": existing.upi_sales or 0.0,
                "card_sales": existing.card_sales or 0.0,
                "opening_verified": True,
            }

        opening = self.opening_reading_for(nozzle_id)
        return {
            "existing": False,
            "reading_id": None,
            "attendant_id": None,
            "previous_reading": opening.value,
            "current_reading": None,
            "testing": 0.0,
            "cash_sales": 0.0,
            "credit_sales": 0.0,
            "upi_sales": 0.0,
            "card_sales": 0.0,
            "opening_verified": opening.verified,
        }

    def _resolve_attendant(self, attendant_id: int) -> Staff:
        staff = (
            self.session.query(Staff)
            .filter(Staff.retail_outlet_id == self.outlet_id, Staff.id == attendant_id)
            .one_or_none()
        )
        if staff is None or staff.role != StaffRole.ATTENDANT:
            raise ValueError(f"Attendant ID {attendant_id} not found")
        return staff

    def record_reading(
        self,
        form: Mapping[str, Any],
        shift_type: ShiftLike,
        shift_date: date,
        enforce_lock: bool = True,
    ) -> Tuple[NozzleReading, Proceeds]:
        """
        Create or update the reading for (nozzle, shift_type, shift_date).
        A new reading opens at the nozzle's last closing reading when one
        exists; the submitted opening is used only for a nozzle's first reading
        and when updating an existing one.
        Raises ReadingValidationError for missing required fields and
        ShiftLockedError when enforce_lock is set and the shift is locked.
        """
        record = reading_from_form(form, shift_type, shift_date)

        nozzle = ShiftLedger.get_nozzle(self.session, self.outlet_id, record.nozzle_id)
        if nozzle is None:
            raise ValueError(f"Nozzle ID {record.nozzle_id} not found")
        self._resolve_attendant(record.attendant_id)
        record.product_id = nozzle.product_id

        if enforce_lock:
            self._check_lock(record.shift_type, shift_date)

        existing = ShiftLedger.get_reading(
            self.session, self.outlet_id, record.nozzle_id, record.shift_type, shift_date
        )
        if existing is None:
            opening = self.opening_reading_for(record.nozzle_id)
            if opening.verified and opening.value != record.previous_reading:
                log_warning(
                    f"Opening {record.previous_reading} for nozzle {record.nozzle_id} replaced by "
                    f"last closing reading {opening.value} (by {self.username})"
                )
                record.previous_reading = opening.value

        row = ShiftLedger.upsert_reading(
            self.session,
            self.outlet_id,
            (record.nozzle_id, record.shift_type, shift_date),
            {
                "attendant_id": record.attendant_id,
                "product_id": record.product_id,
                "previous_reading": record.previous_reading,
                "current_reading": record.current_reading,
                "testing": record.testing,
                "cash_sales": record.cash_sales,
                "credit_sales": record.credit_sales,
                "upi_sales": record.upi_sales,
                "card_sales": record.card_sales,
                "total_sale": round(record.actual_proceeds, 2),
            },
            username=self.username,
        )

        proceeds = self.reading_detail(record)
        if not proceeds.rate_available:
            log_warning(
                f"Rate unavailable for product {record.product_id} on "
                f"{record.shift_type.value} shift {shift_date}; calculated proceeds set to 0"
            )

        SecurityManager.log_audit(
            self.session, self.username, "UPSERT",
            resource_type="NozzleReading",
            resource_id=row.id,
            details=(
                f"Nozzle {record.nozzle_id} {record.shift_type.value} {shift_date.isoformat()}: "
                f"liters={proceeds.liters_sold:.2f} shortage={proceeds.shortage:.2f}"
            ),
            outlet_id=self.outlet_id,
        )
        return row, proceeds

    def reading_detail(self, reading: Union[ReadingRecord, NozzleReading]) -> Proceeds:
        record = reading if isinstance(reading, ReadingRecord) else ShiftLedger.to_reading_record(reading)
        rates = self.rates_for(record.shift_type, record.shift_date)
        rate = find_rate(rates, record.product_id, record.shift_type, record.shift_date)
        return compute_proceeds(record, rate)

    def reading_details(
        self, shift_type: ShiftLike, shift_date: date
    ) -> List[Tuple[ReadingRecord, Proceeds]]:
        rows = ShiftLedger.list_readings(self.session, self.outlet_id, shift_type, shift_date)
        rates = self.rates_for(shift_type, shift_date)
        out = []
        for row in rows:
            record = ShiftLedger.to_reading_record(row)
            rate = find_rate(rates, record.product_id, record.shift_type, record.shift_date)
            out.append((record, compute_proceeds(record, rate)))
        return out

    def delete_reading(self, reading_id: int, reason: Optional[str] = None) -> None:
        row = ShiftLedger.get_reading_by_id(self.session, self.outlet_id, reading_id)
        if row is None:
            raise ValueError(f"Reading ID {reading_id} not found")
        self._check_lock(row.shift_type, row.shift_date)

        label = f"Nozzle {row.nozzle_id} {row.shift_type.value} {row.shift_date.isoformat()}"
        RecycleBinManager.archive_record(
            self.session, row, "NozzleReading", self.username,
            outlet_id=self.outlet_id, reason=reason, label=label,
        )
        self.session.commit()
        log_info(f"Reading {reading_id} archived to recycle bin by {self.username}")
        SecurityManager.log_audit(
            self.session, self.username, "DELETE",
            resource_type="NozzleReading", resource_id=reading_id,
            details=reason or f"Archived {label}",
            outlet_id=self.outlet_id,
        )

    # ------------- stock -------------
    def save_stock_entry(
        self,
        tank_id: int,
        shift_type: ShiftLike,
        shift_date: date,
        data: Mapping[str, Any],
        manager_id: Optional[int] = None,
    ) -> StockEntry:
        tanks = {t.id for t in ShiftLedger.list_tanks(self.session, self.outlet_id, active_only=False)}
        if tank_id not in tanks:
            raise ValueError(f"Tank ID {tank_id} not found")

        values = {
            "opening_stock": parse_amount(data.get("opening_stock")),
            "receipt": parse_amount(data.get("receipt")),
            "invoice_value": parse_amount(data.get("invoice_value")),
        }
        if manager_id is not None:
            values["manager_id"] = manager_id

        row = ShiftLedger.upsert_stock_entry(
            self.session, self.outlet_id, tank_id, shift_type, shift_date, values
        )
        SecurityManager.log_audit(
            self.session, self.username, "UPSERT",
            resource_type="StockEntry", resource_id=row.id,
            details=f"Tank {tank_id} {row.shift_type.value} {shift_date.isoformat()}",
            outlet_id=self.outlet_id,
        )
        return row

    def stock_form_defaults(self, shift_type: ShiftLike, shift_date: date) -> List[Dict[str, Any]]:
        entries = {
            e.tank_id: e
            for e in ShiftLedger.list_stock_entries(self.session, self.outlet_id, shift_type, shift_date)
        }
        rows = []
        for tank in ShiftLedger.list_tanks(self.session, self.outlet_id):
            entry = entries.get(tank.id)
            rows.append({
                "tank_id": tank.id,
                "tank_number": tank.tank_number,
                "product_name": tank.product.name if tank.product is not None else "",
                "capacity": tank.capacity,
                "entry_id": entry.id if entry is not None else None,
                "opening_stock": entry.opening_stock if entry is not None else None,
                "receipt": entry.receipt if entry is not None else None,
                "invoice_value": entry.invoice_value if entry is not None else None,
            })
        return rows

    # ------------- summary -------------
    def shift_summary(self, shift_type: ShiftLike, shift_date: date) -> ShiftSummary:
        st_type = normalize_shift_type(shift_type)
        rows = ShiftLedger.list_readings(self.session, self.outlet_id, st_type, shift_date)
        records = [ShiftLedger.to_reading_record(r) for r in rows]
        names = {a.id: a.name for a in ShiftLedger.list_attendants(self.session, self.outlet_id, active_only=False)}

        attendants = aggregate_by_attendant(records, self.rates_for(st_type, shift_date), names)
        return ShiftSummary(
            shift_type=st_type,
            shift_date=shift_date,
            attendants=attendants,
            totals=shift_totals(attendants),
        )
