from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence

from ...common.datetime_utils import minutes_between, shift_minutes
from ...core.constants import STANDARD_DAILY_MINUTES
from ...entries.model import EntryLike
from ..model import HourComputation, PeriodSummary
from .base import HourCalculator

_CENTS = Decimal("0.01")


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(int(minutes)) / Decimal(60)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def day_overtime_minutes(computations: Sequence[HourComputation], expected_minutes: int) -> int:
    """Net minutes of all entries of one day above that day's expected minutes."""
    return max(sum(c.net_minutes for c in computations) - int(expected_minutes), 0)


class StandardHourCalculator(HourCalculator):
    """Standard rule: (out - in) - break, overtime above the daily threshold.

    Overnight shifts recorded as clock times wrap by one day. An entry with no
    check-out counts up to `now` when given (display only) and zero otherwise.
    """

    def __init__(self, daily_threshold_minutes: int = STANDARD_DAILY_MINUTES):
        self._threshold = int(daily_threshold_minutes)

    @property
    def daily_threshold_minutes(self) -> int:
        return self._threshold

    def compute(
        self,
        entry: EntryLike,
        *,
        now: Optional[datetime] = None,
        daily_threshold_minutes: Optional[int] = None,
    ) -> HourComputation:
        threshold = self._threshold if daily_threshold_minutes is None else int(daily_threshold_minutes)

        if entry.check_in is None:
            return HourComputation(0, 0, minutes_to_hours(0), 0, in_progress=False)

        check_out = entry.check_out
        in_progress = check_out is None
        if in_progress:
            if now is None or now < entry.check_in:
                return HourComputation(0, 0, minutes_to_hours(0), 0, in_progress=True)
            check_out = now

        worked = shift_minutes(entry.check_in, check_out)

        break_minutes = 0
        if entry.break_start is not None and entry.break_end is not None:
            break_minutes = max(minutes_between(entry.break_start, entry.break_end), 0)

        net = max(worked - break_minutes, 0)
        overtime = max(net - threshold, 0)
        return HourComputation(
            worked_minutes=worked,
            break_minutes=break_minutes,
            total_hours=minutes_to_hours(net),
            overtime_minutes=overtime,
            in_progress=in_progress,
        )

    def summarize_period(
        self,
        computations_by_day: Mapping[date, Sequence[HourComputation]],
        *,
        expected_daily_minutes: Optional[Mapping[date, int]] = None,
    ) -> PeriodSummary:
        expected_daily_minutes = expected_daily_minutes or {}

        total = Decimal("0.00")
        overtime_minutes = 0
        expected_minutes = 0
        working_days = 0

        for day in sorted(computations_by_day):
            computations = computations_by_day[day]
            day_expected = int(expected_daily_minutes.get(day, self._threshold))
            day_hours = sum((c.total_hours for c in computations), Decimal("0.00"))
            # Overtime is a property of the day, not of each entry in it.
            overtime_minutes += day_overtime_minutes(computations, day_expected)
            total += day_hours
            if day_hours > 0:
                working_days += 1
                expected_minutes += day_expected

        expected = minutes_to_hours(expected_minutes)
        return PeriodSummary(
            total_hours=total,
            working_days=working_days,
            expected_hours=expected,
            hour_bank_delta=total - expected,
            overtime_hours=minutes_to_hours(overtime_minutes),
        )
