# reconciliation.py
"""
Shift reconciliation engine for FPMS

Turns raw meter readings, product rates and payment totals into liters sold,
expected (calculated) proceeds, reported (actual) proceeds and shortage/excess.

Rules:
- Liters sold = closing reading - opening reading - testing (never clamped; a
  negative value is a meter-entry anomaly the dealer must see).
- Actual proceeds = cash + credit + UPI + card.
- Calculated proceeds = liters sold * rate; 0 when the product has no rate.
- Shortage = calculated - actual. Positive = shortfall, negative = excess.
- A shift stays editable until the NEXT shift of the same date has readings.
  Night has no successor. Dates never gate each other.
- Density at 15°C = observed * [1 + 0.0008 * (observed temp - 15)], 2dp.

Everything here is pure: no sessions, no clocks. Callers pass the (shift_type,
shift_date) pair explicitly and parse form text with parse_amount() first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from models import ShiftType
from outlet_config import OutletConfig


class ReadingValidationError(ValueError):
    """Required reading fields missing at submit time."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required reading fields: {', '.join(self.missing)}")


class ShiftLockedError(ValueError):
    """Edit attempted after the next shift started receiving readings."""

    def __init__(self, shift_type: ShiftType, shift_date: date, blocking_shift: ShiftType):
        self.shift_type = shift_type
        self.shift_date = shift_date
        self.blocking_shift = blocking_shift
        super().__init__(
            f"{shift_type.value.title()} shift of {shift_date.isoformat()} is locked: "
            f"{blocking_shift.value} shift already has readings"
        )


# ---------- records ----------
@dataclass
class ReadingRecord:
    nozzle_id: int
    attendant_id: int
    shift_type: ShiftType
    shift_date: date
    previous_reading: float
    current_reading: float
    testing: float = 0.0
    cash_sales: float = 0.0
    credit_sales: float = 0.0
    upi_sales: float = 0.0
    card_sales: float = 0.0
    product_id: Optional[int] = None
    attendant_name: Optional[str] = None
    id: Optional[int] = None

    @property
    def actual_proceeds(self) -> float:
        return self.cash_sales + self.credit_sales + self.upi_sales + self.card_sales

    def payments(self) -> Dict[str, float]:
        return {
            "cash": self.cash_sales,
            "credit": self.credit_sales,
            "upi": self.upi_sales,
            "card": self.card_sales,
        }


@dataclass
class RateRecord:
    product_id: int
    shift_type: ShiftType
    shift_date: date
    rate: float
    observed_density: Optional[float] = None
    observed_temperature: Optional[float] = None
    density_at_15c: Optional[float] = None
    product_name: Optional[str] = None


@dataclass
class Proceeds:
    liters_sold: float
    rate: float
    calculated: float
    actual: float
    shortage: float
    rate_available: bool

    @property
    def label(self) -> str:
        return shortage_label(self.shortage)

    @property
    def display_amount(self) -> float:
        return abs(self.shortage)


@dataclass
class AttendantSummary:
    attendant_id: int
    attendant_name: Optional[str] = None
    total_cash: float = 0.0
    total_credit: float = 0.0
    total_upi: float = 0.0
    total_card: float = 0.0
    actual_proceeds: float = 0.0
    calculated_proceeds: float = 0.0
    shortage: float = 0.0
    liters_sold: float = 0.0
    reading_count: int = 0
    unrated_readings: int = 0

    @property
    def label(self) -> str:
        return shortage_label(self.shortage)


@dataclass
class ShiftTotals:
    total_cash: float = 0.0
    total_credit: float = 0.0
    total_upi: float = 0.0
    total_card: float = 0.0
    total_actual: float = 0.0
    total_calculated: float = 0.0
    total_shortage: float = 0.0
    liters_sold: float = 0.0
    attendant_count: int = 0
    unrated_readings: int = 0

    @property
    def label(self) -> str:
        return shortage_label(self.total_shortage)


@dataclass
class EditLock:
    editable: bool
    blocking_shift: Optional[ShiftType] = None
    next_shift: Optional[ShiftType] = None
    next_shift_readings: int = 0
    notes: List[str] = field(default_factory=list)


# ---------- boundary helpers ----------
def parse_amount(value: Any) -> float:
    """Form text -> float. Empty, None and unparseable text count as 0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        out = float(value)
    else:
        try:
            out = float(str(value).replace(",", "").strip())
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_shift_type(value: Union[ShiftType, str]) -> ShiftType:
    if isinstance(value, ShiftType):
        return value
    try:
        return ShiftType(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown shift type '{value}'") from None


def next_shift_type(shift_type: Union[ShiftType, str]) -> Optional[ShiftType]:
    current = normalize_shift_type(shift_type)
    nxt = OutletConfig.next_shift(current.value)
    return ShiftType(nxt) if nxt else None


REQUIRED_READING_FIELDS = ("attendant_id", "nozzle_id", "previous_reading", "current_reading")


def reading_from_form(
    data: Mapping[str, Any],
    shift_type: Union[ShiftType, str],
    shift_date: date,
) -> ReadingRecord:
    """
    Build a ReadingRecord from raw form values.
    Raises ReadingValidationError when attendant, nozzle, opening or closing
    reading is absent; every numeric field is parsed with parse_amount().
    """
    missing = [f for f in REQUIRED_READING_FIELDS if _is_blank(data.get(f))]
    if missing:
        raise ReadingValidationError(missing)

    return ReadingRecord(
        nozzle_id=int(data["nozzle_id"]),
        attendant_id=int(data["attendant_id"]),
        shift_type=normalize_shift_type(shift_type),
        shift_date=shift_date,
        previous_reading=parse_amount(data.get("previous_reading")),
        current_reading=parse_amount(data.get("current_reading")),
        testing=parse_amount(data.get("testing")),
        cash_sales=parse_amount(data.get("cash_sales")),
        credit_sales=parse_amount(data.get("credit_sales")),
        upi_sales=parse_amount(data.get("upi_sales")),
        card_sales=parse_amount(data.get("card_sales")),
        product_id=int(data["product_id"]) if not _is_blank(data.get("product_id")) else None,
    )


def shortage_label(shortage: float) -> str:
    """Display convention: positive shortage is a shortfall, negative an excess."""
    if shortage > 0:
        return "Shortage"
    if shortage < 0:
        return "Excess"
    return "Balanced"


# ---------- density ----------
def density_at_15c(observed_density: float, observed_temperature: float) -> float:
    correction = 1 + OutletConfig.DENSITY_CORRECTION_COEFFICIENT * (
        observed_temperature - OutletConfig.DENSITY_REFERENCE_TEMP_C
    )
    return round(observed_density * correction, 2)


def maybe_density_at_15c(
    observed_density: Optional[float],
    observed_temperature: Optional[float],
) -> Optional[float]:
    """density_at_15c() only once both observations are present and non-zero."""
    if not observed_density or not observed_temperature:
        return None
    return density_at_15c(float(observed_density), float(observed_temperature))


# ---------- per-reading reconciliation ----------
def compute_liters_sold(reading: ReadingRecord) -> float:
    return reading.current_reading - reading.previous_reading - reading.testing


def compute_proceeds(reading: ReadingRecord, rate: Optional[RateRecord]) -> Proceeds:
    liters = compute_liters_sold(reading)
    price = float(rate.rate) if rate is not None and rate.rate else 0.0
    rate_available = price > 0
    calculated = liters * price if rate_available else 0.0
    actual = reading.actual_proceeds
    return Proceeds(
        liters_sold=liters,
        rate=price,
        calculated=calculated,
        actual=actual,
        shortage=calculated - actual,
        rate_available=rate_available,
    )


def find_rate(
    rates: Optional[Iterable[RateRecord]],
    product_id: Optional[int],
    shift_type: Optional[ShiftType] = None,
    shift_date: Optional[date] = None,
) -> Optional[RateRecord]:
    """
    Rate for a product. An exact (shift_type, shift_date) match wins over any
    other rate supplied for the same product.
    """
    if product_id is None:
        return None
    fallback = None
    for r in rates or []:
        if r.product_id != product_id:
            continue
        if r.shift_type == shift_type and r.shift_date == shift_date:
            return r
        if fallback is None:
            fallback = r
    return fallback


# ---------- shift lock ----------
def shift_edit_lock(
    shift_type: Union[ShiftType, str],
    shift_date: date,
    readings: Iterable[Any],
) -> EditLock:
    current = normalize_shift_type(shift_type)
    nxt = next_shift_type(current)
    if nxt is None:
        return EditLock(editable=True)

    count = 0
    for r in readings or []:
        if normalize_shift_type(r.shift_type) == nxt and r.shift_date == shift_date:
            count += 1

    if count:
        return EditLock(
            editable=False,
            blocking_shift=nxt,
            next_shift=nxt,
            next_shift_readings=count,
            notes=[f"{nxt.value.title()} shift already has {count} reading(s)"],
        )
    return EditLock(editable=True, next_shift=nxt)


def is_shift_editable(
    shift_type: Union[ShiftType, str],
    shift_date: date,
    readings: Iterable[Any],
) -> bool:
    return shift_edit_lock(shift_type, shift_date, readings).editable


# ---------- attendant aggregation ----------
def aggregate_by_attendant(
    readings: Iterable[ReadingRecord],
    rates: Optional[Iterable[RateRecord]],
    attendant_names: Optional[Mapping[int, str]] = None,
) -> List[AttendantSummary]:
    """
    Fold one shift's readings per attendant, in first-seen order.
    A missing rate list counts as empty (every reading unrated).
    """
    if readings is None:
        raise ValueError("readings are required for attendant aggregation")

    rate_list = list(rates or [])
    names = attendant_names or {}
    out: Dict[int, AttendantSummary] = {}

    for reading in readings:
        summary = out.get(reading.attendant_id)
        if summary is None:
            summary = AttendantSummary(
                attendant_id=reading.attendant_id,
                attendant_name=names.get(reading.attendant_id) or reading.attendant_name,
            )
            out[reading.attendant_id] = summary

        rate = find_rate(rate_list, reading.product_id, reading.shift_type, reading.shift_date)
        proceeds = compute_proceeds(reading, rate)

        summary.total_cash += reading.cash_sales
        summary.total_credit += reading.credit_sales
        summary.total_upi += reading.upi_sales
        summary.total_card += reading.card_sales
        summary.actual_proceeds += proceeds.actual
        summary.calculated_proceeds += proceeds.calculated
        summary.liters_sold += proceeds.liters_sold
        summary.reading_count += 1
        if not proceeds.rate_available:
            summary.unrated_readings += 1

    for summary in out.values():
        summary.shortage = summary.calculated_proceeds - summary.actual_proceeds

    return list(out.values())


def shift_totals(summaries: Iterable[AttendantSummary]) -> ShiftTotals:
    totals = ShiftTotals()
    for s in summaries:
        totals.total_cash += s.total_cash
        totals.total_credit += s.total_credit
        totals.total_upi += s.total_upi
        totals.total_card += s.total_card
        totals.total_actual += s.actual_proceeds
        totals.total_calculated += s.calculated_proceeds
        totals.liters_sold += s.liters_sold
        totals.unrated_readings += s.unrated_readings
        totals.attendant_count += 1
    totals.total_shortage = totals.total_calculated - totals.total_actual
    return totals
