# shift_ledger.py
"""
Shift ledger: persistence for shift-scoped records.

Every shift-scoped table is keyed by a natural composite key
(nozzle|product|tank, shift_type, shift_date). Upserts here are the only
writers of those tables, so each key maps to at most one row; a concurrent
insert that loses the unique-constraint race is retried as an update.
All queries are scoped to one retail outlet.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logger import log_debug, log_info, log_warning
from models import (
    DispensingUnit, Nozzle, NozzleReading, ProductRate, ShiftType, Staff,
    StaffRole, StockEntry, Tank,
)
from outlet_config import OutletConfig
from reconciliation import RateRecord, ReadingRecord, normalize_shift_type

READING_FIELDS = (
    "attendant_id", "product_id", "previous_reading", "current_reading", "testing",
    "cash_sales", "credit_sales", "upi_sales", "card_sales", "total_sale",
)
RATE_FIELDS = ("rate", "observed_density", "observed_temperature", "density_at_15c")
STOCK_FIELDS = ("opening_stock", "receipt", "invoice_value", "manager_id")

ShiftLike = Union[ShiftType, str]


def _apply(row: Any, data: Dict[str, Any], allowed: Tuple[str, ...]) -> None:
    for key in allowed:
        if key in data:
            setattr(row, key, data[key])


def _upsert(
    session: Session,
    model: Type,
    key: Dict[str, Any],
    data: Dict[str, Any],
    allowed: Tuple[str, ...],
    username: Optional[str] = None,
):
    """Update the row matching `key`, or create it. Commits."""
    row = session.query(model).filter_by(**key).one_or_none()
    created = row is None
    if created:
        row = model(**key)
        if username and hasattr(row, "created_by"):
            row.created_by = username
        session.add(row)
    elif username and hasattr(row, "updated_by"):
        row.updated_by = username
    _apply(row, data, allowed)

    try:
        session.commit()
    except IntegrityError:
        # Lost an insert race on the natural key: update the winner's row
        session.rollback()
        log_warning(f"{model.__name__} insert raced on {key}; retrying as update")
        row = session.query(model).filter_by(**key).one()
        if username and hasattr(row, "updated_by"):
            row.updated_by = username
        _apply(row, data, allowed)
        session.commit()
        created = False

    log_debug(f"{'Created' if created else 'Updated'} {model.__name__} {key}")
    return row


class ShiftLedger:
    """Read/write access to readings, rates, stock entries and setup lists"""

    # ------------- record conversion -------------
    @staticmethod
    def to_reading_record(row: NozzleReading) -> ReadingRecord:
        """Rated against the product stored on the reading; older rows fall back to the nozzle's."""
        product_id = row.product_id
        if product_id is None and row.nozzle is not None:
            product_id = row.nozzle.product_id
        return ReadingRecord(
            id=row.id,
            nozzle_id=row.nozzle_id,
            attendant_id=row.attendant_id,
            shift_type=row.shift_type,
            shift_date=row.shift_date,
            previous_reading=float(row.previous_reading or 0.0),
            current_reading=float(row.current_reading or 0.0),
            testing=float(row.testing or 0.0),
            cash_sales=float(row.cash_sales or 0.0),
            credit_sales=float(row.credit_sales or 0.0),
            upi_sales=float(row.upi_sales or 0.0),
            card_sales=float(row.card_sales or 0.0),
            product_id=product_id,
            attendant_name=row.attendant.name if row.attendant is not None else None,
        )

    @staticmethod
    def to_rate_record(row: ProductRate) -> RateRecord:
        return RateRecord(
            product_id=row.product_id,
            shift_type=row.shift_type,
            shift_date=row.shift_date,
            rate=float(row.rate or 0.0),
            observed_density=row.observed_density,
            observed_temperature=row.observed_temperature,
            density_at_15c=row.density_at_15c,
            product_name=row.product.name if row.product is not None else None,
        )

    # ------------- readings -------------
    @staticmethod
    def list_readings(
        session: Session, outlet_id: int, shift_type: ShiftLike, shift_date: date
    ) -> List[NozzleReading]:
        return (
            session.query(NozzleReading)
            .filter(
                NozzleReading.retail_outlet_id == outlet_id,
                NozzleReading.shift_type == normalize_shift_type(shift_type),
                NozzleReading.shift_date == shift_date,
            )
            .order_by(NozzleReading.id)
            .all()
        )

    @staticmethod
    def list_readings_for_date(session: Session, outlet_id: int, shift_date: date) -> List[NozzleReading]:
        """All shifts of one date (input for the edit lock)"""
        return (
            session.query(NozzleReading)
            .filter(
                NozzleReading.retail_outlet_id == outlet_id,
                NozzleReading.shift_date == shift_date,
            )
            .order_by(NozzleReading.id)
            .all()
        )

    @staticmethod
    def list_readings_between(
        session: Session, outlet_id: int, date_from: date, date_to: date
    ) -> List[NozzleReading]:
        return (
            session.query(NozzleReading)
            .filter(
                NozzleReading.retail_outlet_id == outlet_id,
                NozzleReading.shift_date >= date_from,
                NozzleReading.shift_date <= date_to,
            )
            .order_by(NozzleReading.shift_date, NozzleReading.id)
            .all()
        )

    @staticmethod
    def get_reading(
        session: Session, outlet_id: int, nozzle_id: int, shift_type: ShiftLike, shift_date: date
    ) -> Optional[NozzleReading]:
        return (
            session.query(NozzleReading)
            .filter(
                NozzleReading.retail_outlet_id == outlet_id,
                NozzleReading.nozzle_id == nozzle_id,
                NozzleReading.shift_type == normalize_shift_type(shift_type),
                NozzleReading.shift_date == shift_date,
            )
            .one_or_none()
        )

    @staticmethod
    def find_last_reading(session: Session, outlet_id: int, nozzle_id: int) -> Optional[NozzleReading]:
        """Most recently created reading for a nozzle, any shift or date"""
        return (
            session.query(NozzleReading)
            .filter(
                NozzleReading.retail_outlet_id == outlet_id,
                NozzleReading.nozzle_id == nozzle_id,
            )
            .order_by(NozzleReading.created_at.desc(), NozzleReading.id.desc())
            .first()
        )

    @staticmethod
    def upsert_reading(
        session: Session,
        outlet_id: int,
        key: Tuple[int, ShiftLike, date],
        data: Dict[str, Any],
        username: Optional[str] = None,
    ) -> NozzleReading:
        nozzle_id, shift_type, shift_date = key
        row = _upsert(
            session,
            NozzleReading,
            {
                "retail_outlet_id": outlet_id,
                "nozzle_id": nozzle_id,
                "shift_type": normalize_shift_type(shift_type),
                "shift_date": shift_date,
            },
            data,
            READING_FIELDS,
            username=username,
        )
        log_info(f"Reading saved: nozzle={nozzle_id} shift={row.shift_type.value} date={shift_date}")
        return row

    @staticmethod
    def get_reading_by_id(session: Session, outlet_id: int, reading_id: int) -> Optional[NozzleReading]:
        return (
            session.query(NozzleReading)
            .filter(NozzleReading.retail_outlet_id == outlet_id, NozzleReading.id == reading_id)
            .one_or_none()
        )

    # ------------- product rates -------------
    @staticmethod
    def list_product_rates(
        session: Session, outlet_id: int, shift_date: date, shift_type: ShiftLike
    ) -> List[ProductRate]:
        return (
            session.query(ProductRate)
            .filter(
                ProductRate.retail_outlet_id == outlet_id,
                ProductRate.shift_date == shift_date,
                ProductRate.shift_type == normalize_shift_type(shift_type),
            )
            .order_by(ProductRate.product_id)
            .all()
        )

    @staticmethod
    def last_product_rates(
        session: Session, outlet_id: int, shift_date: date, shift_type: ShiftLike
    ) -> Dict[int, ProductRate]:
        """
        Rates to pre-fill a shift's rate form: the slot's own rate when saved,
        otherwise the latest rate from an earlier slot (earlier date, or an
        earlier shift of the same date).
        """
        current = normalize_shift_type(shift_type)
        order = OutletConfig.SHIFT_SEQUENCE
        slot = (shift_date, order.index(current.value))

        rows = (
            session.query(ProductRate)
            .filter(
                ProductRate.retail_outlet_id == outlet_id,
                ProductRate.shift_date <= shift_date,
            )
            .all()
        )
        best: Dict[int, Tuple[Tuple[date, int], ProductRate]] = {}
        for r in rows:
            pos = (r.shift_date, order.index(r.shift_type.value))
            if pos > slot:
                continue
            held = best.get(r.product_id)
            if held is None or pos > held[0]:
                best[r.product_id] = (pos, r)
        return {pid: r for pid, (_pos, r) in best.items()}

    @staticmethod
    def upsert_product_rate(
        session: Session,
        outlet_id: int,
        product_id: int,
        shift_date: date,
        shift_type: ShiftLike,
        data: Dict[str, Any],
    ) -> ProductRate:
        row = _upsert(
            session,
            ProductRate,
            {
                "retail_outlet_id": outlet_id,
                "product_id": product_id,
                "shift_type": normalize_shift_type(shift_type),
                "shift_date": shift_date,
            },
            data,
            RATE_FIELDS,
        )
        log_info(f"Rate saved: product={product_id} shift={row.shift_type.value} date={shift_date} rate={row.rate}")
        return row

    # ------------- stock entries -------------
    @staticmethod
    def list_stock_entries(
        session: Session, outlet_id: int, shift_type: ShiftLike, shift_date: date
    ) -> List[StockEntry]:
        return (
            session.query(StockEntry)
            .filter(
                StockEntry.retail_outlet_id == outlet_id,
                StockEntry.shift_type == normalize_shift_type(shift_type),
                StockEntry.shift_date == shift_date,
            )
            .order_by(StockEntry.tank_id)
            .all()
        )

    @staticmethod
    def upsert_stock_entry(
        session: Session,
        outlet_id: int,
        tank_id: int,
        shift_type: ShiftLike,
        shift_date: date,
        data: Dict[str, Any],
    ) -> StockEntry:
        row = _upsert(
            session,
            StockEntry,
            {
                "retail_outlet_id": outlet_id,
                "tank_id": tank_id,
                "shift_type": normalize_shift_type(shift_type),
                "shift_date": shift_date,
            },
            data,
            STOCK_FIELDS,
        )
        log_info(f"Stock entry saved: tank={tank_id} shift={row.shift_type.value} date={shift_date}")
        return row

    # ------------- setup lists -------------
    @staticmethod
    def list_nozzles(session: Session, outlet_id: int, active_only: bool = True) -> List[Nozzle]:
        query = (
            session.query(Nozzle)
            .join(DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id)
            .filter(DispensingUnit.retail_outlet_id == outlet_id)
        )
        if active_only:
            query = query.filter(Nozzle.is_active == True)  # noqa: E712
        return query.order_by(DispensingUnit.name, Nozzle.nozzle_number).all()

    @staticmethod
    def get_nozzle(session: Session, outlet_id: int, nozzle_id: int) -> Optional[Nozzle]:
        return (
            session.query(Nozzle)
            .join(DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id)
            .filter(DispensingUnit.retail_outlet_id == outlet_id, Nozzle.id == nozzle_id)
            .one_or_none()
        )

    @staticmethod
    def list_attendants(session: Session, outlet_id: int, active_only: bool = True) -> List[Staff]:
        query = session.query(Staff).filter(
            Staff.retail_outlet_id == outlet_id,
            Staff.role == StaffRole.ATTENDANT,
        )
        if active_only:
            query = query.filter(Staff.is_active == True)  # noqa: E712
        return query.order_by(Staff.name).all()

    @staticmethod
    def list_tanks(session: Session, outlet_id: int, active_only: bool = True) -> List[Tank]:
        query = session.query(Tank).filter(Tank.retail_outlet_id == outlet_id)
        if active_only:
            query = query.filter(Tank.is_active == True)  # noqa: E712
        return query.order_by(Tank.tank_number).all()
