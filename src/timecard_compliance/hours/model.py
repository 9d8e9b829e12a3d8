from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class HourComputation:
    """Worked time of one entry, in whole minutes."""

    worked_minutes: int
    break_minutes: int
    total_hours: Decimal
    overtime_minutes: int
    in_progress: bool = False

    @property
    def net_minutes(self) -> int:
        return max(self.worked_minutes - self.break_minutes, 0)


@dataclass(frozen=True)
class PeriodSummary:
    """Hour-bank snapshot for one user over a period. Always recomputable."""

    total_hours: Decimal
    working_days: int
    expected_hours: Decimal
    hour_bank_delta: Decimal
    overtime_hours: Decimal
