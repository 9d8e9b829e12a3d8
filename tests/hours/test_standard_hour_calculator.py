from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from timecard_compliance.entries.normalizer import EntryNormalizer
from timecard_compliance.hours.calculator.standard_calculator import StandardHourCalculator, minutes_to_hours


def test_long_day_with_inferred_break(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 18, 0))

    result = StandardHourCalculator().compute(EntryNormalizer().normalize_existing(entry))

    assert result.worked_minutes == 600
    assert result.break_minutes == 60
    assert result.total_hours == Decimal("9.00")
    assert result.overtime_minutes == 60
    assert not result.in_progress


def test_three_minute_shift_rounds_to_cents(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 9, 0), datetime(2024, 3, 4, 9, 3))

    result = StandardHourCalculator().compute(entry)

    assert result.total_hours == Decimal("0.05")
    assert result.overtime_minutes == 0


def test_overnight_shift_wraps(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 22, 0), datetime(2024, 3, 4, 6, 0))

    result = StandardHourCalculator().compute(entry)

    assert result.worked_minutes == 480
    assert result.total_hours == Decimal("8.00")


def test_open_entry_counts_up_to_now(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0))
    calc = StandardHourCalculator()

    assert calc.compute(entry).total_hours == Decimal("0.00")
    running = calc.compute(entry, now=datetime(2024, 3, 4, 10, 30))
    assert running.total_hours == Decimal("2.50")
    assert running.in_progress


def test_custom_threshold(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 14, 0))

    assert StandardHourCalculator(300).compute(entry).overtime_minutes == 60
    assert StandardHourCalculator().compute(entry, daily_threshold_minutes=330).overtime_minutes == 30


def test_minutes_to_hours_rounds_half_up():
    assert minutes_to_hours(1) == Decimal("0.02")
    assert minutes_to_hours(50) == Decimal("0.83")
    assert minutes_to_hours(0) == Decimal("0.00")


def test_summarize_period_hour_bank(make_entry):
    calc = StandardHourCalculator()
    normalizer = EntryNormalizer()
    days = {
        date(2024, 3, 4): [calc.compute(normalizer.normalize_existing(
            make_entry(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 18, 0))
        ))],
        date(2024, 3, 5): [calc.compute(make_entry(datetime(2024, 3, 5, 8, 0), datetime(2024, 3, 5, 12, 0)))],
    }

    summary = calc.summarize_period(days)

    assert summary.total_hours == Decimal("13.00")
    assert summary.working_days == 2
    assert summary.expected_hours == Decimal("16.00")
    assert summary.hour_bank_delta == Decimal("-3.00")
    assert summary.overtime_hours == Decimal("1.00")
