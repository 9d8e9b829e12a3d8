from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from ..entries.model import NormalizedEntry, TimeEntry
from ..entries.normalizer import EntryNormalizer
from ..entries.repository import TimeEntryRepository
from ..schedules.repository import ScheduleRepository
from .calculator.base import HourCalculator
from .calculator.standard_calculator import StandardHourCalculator
from .model import HourComputation, PeriodSummary

logger = logging.getLogger(__name__)


def recompute_total_hours(
    normalized: NormalizedEntry,
    calculator: HourCalculator,
    *,
    daily_threshold_minutes: Optional[int] = None,
) -> TimeEntry:
    """The only way `total_hours` gets set on an entry.

    Open entries keep `total_hours` empty.
    """

    entry = normalized.entry
    if entry.check_in is None or entry.check_out is None:
        return entry.with_changes(total_hours=None)
    computation = calculator.compute(normalized, daily_threshold_minutes=daily_threshold_minutes)
    return entry.with_changes(total_hours=computation.total_hours)


class HourBankService:
    """Hour bank for one user: worked minus expected hours over a window."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        schedules: Optional[ScheduleRepository] = None,
        *,
        normalizer: Optional[EntryNormalizer] = None,
        calculator: Optional[HourCalculator] = None,
    ):
        self._entries = entries
        self._schedules = schedules
        self._normalizer = normalizer or EntryNormalizer()
        self._calculator = calculator or StandardHourCalculator()

    def compute_balance(self, *, user_id: str, tenant_id: str, start: date, end: date) -> PeriodSummary:
        rows = self._entries.find_entries_in_range(user_id=user_id, tenant_id=tenant_id, start=start, end=end)

        by_day: dict[date, list[HourComputation]] = defaultdict(list)
        expected: dict[date, int] = {}
        for entry in rows:
            if entry.tenant_id != tenant_id or entry.check_in is None:
                logger.warning("Skipping entry %s outside tenant %s or without check-in", entry.entry_id, tenant_id)
                continue
            day = entry.check_in.date()
            if day < start or day > end:
                continue

            if day not in expected:
                schedule = self._schedules.get_active_schedule(user_id=user_id, tenant_id=tenant_id, on_date=day) if self._schedules else None
                if schedule is not None:
                    expected[day] = schedule.expected_minutes_on(day)

            normalized = self._normalizer.normalize_existing(entry)
            by_day[day].append(self._calculator.compute(normalized, daily_threshold_minutes=expected.get(day)))

        return self._calculator.summarize_period(by_day, expected_daily_minutes=expected)
