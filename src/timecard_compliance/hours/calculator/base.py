from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Mapping, Optional, Sequence

from ...entries.model import EntryLike
from ..model import HourComputation, PeriodSummary


class HourCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked-time rules)."""

    @property
    @abstractmethod
    def daily_threshold_minutes(self) -> int:
        """Expected minutes of a day with no schedule."""
        raise NotImplementedError

    @abstractmethod
    def compute(
        self,
        entry: EntryLike,
        *,
        now: Optional[datetime] = None,
        daily_threshold_minutes: Optional[int] = None,
    ) -> HourComputation:
        raise NotImplementedError

    @abstractmethod
    def summarize_period(
        self,
        computations_by_day: Mapping[date, Sequence[HourComputation]],
        *,
        expected_daily_minutes: Optional[Mapping[date, int]] = None,
    ) -> PeriodSummary:
        raise NotImplementedError
