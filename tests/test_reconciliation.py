"""Tests for the pure reconciliation engine."""

from __future__ import annotations

from datetime import date

import pytest

from models import ShiftType
from reconciliation import (
    RateRecord, ReadingRecord, ReadingValidationError, aggregate_by_attendant,
    compute_liters_sold, compute_proceeds, density_at_15c, find_rate,
    is_shift_editable, maybe_density_at_15c, normalize_shift_type, parse_amount,
    reading_from_form, shift_edit_lock, shift_totals, shortage_label,
)

D = date(2024, 5, 10)


def make_reading(**kw) -> ReadingRecord:
    base = dict(
        nozzle_id=1, attendant_id=1, shift_type=ShiftType.MORNING, shift_date=D,
        previous_reading=1000.0, current_reading=1150.0, testing=5.0, product_id=1,
    )
    base.update(kw)
    return ReadingRecord(**base)


def make_rate(product_id=1, rate=100.0, shift_type=ShiftType.MORNING, shift_date=D) -> RateRecord:
    return RateRecord(product_id=product_id, shift_type=shift_type, shift_date=shift_date, rate=rate)


# ---------------------------------------------------------------------------
# Liters and proceeds
# ---------------------------------------------------------------------------


def test_liters_and_calculated_proceeds():
    reading = make_reading()
    assert compute_liters_sold(reading) == 145
    assert compute_proceeds(reading, make_rate()).calculated == pytest.approx(14500.00)


def test_payments_against_calculated_give_shortfall():
    reading = make_reading(cash_sales=5000, upi_sales=9000)
    proceeds = compute_proceeds(reading, make_rate())

    assert proceeds.actual == pytest.approx(14000.00)
    assert proceeds.shortage == pytest.approx(500.00)
    assert proceeds.label == "Shortage"
    assert proceeds.rate_available


def test_missing_rate_turns_all_revenue_into_excess():
    reading = make_reading(cash_sales=5000, upi_sales=9000)
    proceeds = compute_proceeds(reading, None)

    assert proceeds.calculated == 0
    assert proceeds.shortage == pytest.approx(-14000.00)
    assert proceeds.label == "Excess"
    assert not proceeds.rate_available


def test_zero_rate_counts_as_unavailable():
    proceeds = compute_proceeds(make_reading(cash_sales=10), make_rate(rate=0))
    assert proceeds.calculated == 0
    assert not proceeds.rate_available


@pytest.mark.parametrize("p, c, t", [(0, 0, 0), (1000, 1150, 5), (500.5, 400.25, 0), (10, 20, 15)])
def test_liters_sold_is_linear(p, c, t):
    reading = make_reading(previous_reading=p, current_reading=c, testing=t)
    assert compute_liters_sold(reading) == pytest.approx(c - p - t)


def test_negative_liters_are_not_clamped():
    reading = make_reading(previous_reading=1200, current_reading=1150, testing=0)
    proceeds = compute_proceeds(reading, make_rate())
    assert proceeds.liters_sold == -50
    assert proceeds.calculated == pytest.approx(-5000)


def test_actual_proceeds_is_exact_sum_of_payments():
    reading = make_reading(cash_sales=1234.56, credit_sales=0.01, upi_sales=99.99, card_sales=500.5)
    assert reading.actual_proceeds == pytest.approx(1234.56 + 0.01 + 99.99 + 500.5, abs=0.005)


def test_display_amount_is_absolute_value():
    proceeds = compute_proceeds(make_reading(cash_sales=20000), make_rate())
    assert proceeds.shortage < 0
    assert proceeds.display_amount == pytest.approx(5500)


def test_shortage_label():
    assert shortage_label(1) == "Shortage"
    assert shortage_label(-0.5) == "Excess"
    assert shortage_label(0) == "Balanced"


# ---------------------------------------------------------------------------
# Density
# ---------------------------------------------------------------------------


def test_density_at_15c_example():
    assert density_at_15c(750.00, 25) == 756.00


def test_density_unchanged_at_reference_temperature():
    assert density_at_15c(832.45, 15) == 832.45


def test_density_follows_correction_factor_across_range():
    values = [density_at_15c(800.0, t) for t in range(-10, 61, 5)]
    assert values == sorted(values)
    assert density_at_15c(800.0, 5) < 800.0 < density_at_15c(800.0, 25)


def test_maybe_density_needs_both_observations():
    assert maybe_density_at_15c(None, 25) is None
    assert maybe_density_at_15c(750.0, None) is None
    assert maybe_density_at_15c(0, 25) is None
    assert maybe_density_at_15c(750.0, 25) == 756.00


# ---------------------------------------------------------------------------
# Boundary parsing
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("raw, expected", [
    (None, 0.0), ("", 0.0), ("  ", 0.0), ("abc", 0.0), ("1,250.50", 1250.5),
    ("42", 42.0), (7, 7.0), (float("nan"), 0.0), ("inf", 0.0),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_reading_from_form_rejects_missing_fields():
    with pytest.raises(ReadingValidationError) as exc:
        reading_from_form({"nozzle_id": 1, "previous_reading": "10", "current_reading": ""}, "morning", D)
    assert exc.value.missing == ["attendant_id", "current_reading"]


def test_reading_from_form_parses_text_amounts():
    record = reading_from_form({
        "nozzle_id": "3", "attendant_id": 2, "previous_reading": "1,000",
        "current_reading": "1150", "testing": "", "cash_sales": "oops", "upi_sales": "9000",
    }, "Evening", D)

    assert record.nozzle_id == 3
    assert record.shift_type is ShiftType.EVENING
    assert record.previous_reading == 1000.0
    assert record.testing == 0.0
    assert record.cash_sales == 0.0
    assert record.upi_sales == 9000.0


def test_normalize_shift_type_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_shift_type("afternoon")


# ---------------------------------------------------------------------------
# Shift lock
# ---------------------------------------------------------------------------


def test_only_the_immediate_next_shift_locks():
    night = make_reading(shift_type=ShiftType.NIGHT)
    assert is_shift_editable("evening", D, [night])
    assert is_shift_editable("morning", D, [night])


def test_morning_locked_once_evening_has_readings():
    evening = make_reading(shift_type=ShiftType.EVENING)
    assert not is_shift_editable("morning", D, [evening])

    lock = shift_edit_lock("morning", D, [evening, evening])
    assert lock.blocking_shift is ShiftType.EVENING
    assert lock.next_shift_readings == 2


def test_other_dates_never_lock():
    evening_next_day = make_reading(shift_type=ShiftType.EVENING, shift_date=date(2024, 5, 11))
    assert is_shift_editable("morning", D, [evening_next_day])


@pytest.mark.parametrize("readings", [
    [],
    [make_reading(shift_type=ShiftType.MORNING), make_reading(shift_type=ShiftType.EVENING)],
    [make_reading(shift_type=ShiftType.NIGHT, shift_date=date(2024, 5, 11))],
])
def test_night_is_always_editable(readings):
    assert is_shift_editable(ShiftType.NIGHT, D, readings)


# ---------------------------------------------------------------------------
# Rates and aggregation
# ---------------------------------------------------------------------------


def test_find_rate_prefers_exact_slot():
    other = make_rate(rate=95.0, shift_type=ShiftType.EVENING)
    exact = make_rate(rate=100.0)
    assert find_rate([other, exact], 1, ShiftType.MORNING, D) is exact
    assert find_rate([other], 1, ShiftType.MORNING, D) is other
    assert find_rate([exact], 2, ShiftType.MORNING, D) is None
    assert find_rate([exact], None) is None


def test_aggregate_by_attendant_is_additive():
    rates = [make_rate(product_id=1, rate=100.0), make_rate(product_id=2, rate=90.0)]
    readings = [
        make_reading(attendant_id=7, product_id=1, cash_sales=5000, upi_sales=9000),
        make_reading(attendant_id=8, nozzle_id=2, product_id=2, previous_reading=0,
                     current_reading=100, testing=0, card_sales=9000),
        make_reading(attendant_id=7, nozzle_id=3, product_id=1, previous_reading=0,
                     current_reading=10, testing=0, cash_sales=1100),
    ]

    summaries = aggregate_by_attendant(readings, rates, {7: "Ravi", 8: "Anita"})

    assert [s.attendant_id for s in summaries] == [7, 8]
    ravi, anita = summaries
    assert ravi.attendant_name == "Ravi"
    assert ravi.reading_count == 2
    assert ravi.liters_sold == pytest.approx(155)
    assert ravi.calculated_proceeds == pytest.approx(15500)
    assert ravi.actual_proceeds == pytest.approx(15100)
    assert ravi.total_cash == pytest.approx(6100)
    per_reading = sum(
        compute_proceeds(r, find_rate(rates, r.product_id, r.shift_type, r.shift_date)).shortage
        for r in readings if r.attendant_id == 7
    )
    assert ravi.shortage == pytest.approx(per_reading)
    assert anita.shortage == pytest.approx(0)
    assert anita.label == "Balanced"

    totals = shift_totals(summaries)
    assert totals.attendant_count == 2
    assert totals.total_shortage == pytest.approx(ravi.shortage + anita.shortage)
    assert totals.total_actual == pytest.approx(24100)


def test_aggregate_without_rates_treats_list_as_empty():
    summaries = aggregate_by_attendant([make_reading(cash_sales=100)], None)
    assert summaries[0].calculated_proceeds == 0
    assert summaries[0].shortage == pytest.approx(-100)
    assert summaries[0].unrated_readings == 1


def test_aggregate_requires_readings():
    with pytest.raises(ValueError):
        aggregate_by_attendant(None, [])


def test_aggregate_empty_readings():
    assert aggregate_by_attendant([], []) == []
    assert shift_totals([]).total_shortage == 0
