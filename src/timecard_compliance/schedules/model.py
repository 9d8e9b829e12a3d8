from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import FrozenSet, Optional

from ..common.datetime_utils import shift_minutes
from ..common.validators import require_non_empty
from ..core.constants import STANDARD_DAILY_MINUTES
from ..core.enums import ScheduleType
from ..core.exceptions import ValidationError

SCHEDULE_TYPE_LABELS = {
    ScheduleType.FIVE_BY_TWO: "5x2 (5 dias trabalhados, 2 dias de folga)",
    ScheduleType.SIX_BY_ONE: "6x1 (6 dias trabalhados, 1 dia de folga)",
    ScheduleType.TWELVE_BY_THIRTY_SIX: "12x36 (12 horas trabalhadas, 36 horas de folga)",
    ScheduleType.SHIFT: "Turnos",
    ScheduleType.FLEXIBLE: "Flexível",
    ScheduleType.INTERMITTENT: "Intermitente",
}


@dataclass(frozen=True)
class WorkSchedule:
    """Domain entity: the contractual shift shape of a user.

    Weekday indices follow `date.weekday()` (0 = Monday).
    """

    user_id: str
    tenant_id: str
    schedule_type: ScheduleType
    effective_from: date
    work_days: FrozenSet[int] = field(default_factory=lambda: frozenset({0, 1, 2, 3, 4}))
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_duration_minutes: int = 60
    effective_to: Optional[date] = None
    is_active: bool = True

    def __post_init__(self) -> None:
        require_non_empty(self.user_id, "user_id")
        require_non_empty(self.tenant_id, "tenant_id")
        if not isinstance(self.schedule_type, ScheduleType):
            object.__setattr__(self, "schedule_type", ScheduleType(self.schedule_type))
        object.__setattr__(self, "work_days", frozenset(int(d) for d in self.work_days))
        if any(d < 0 or d > 6 for d in self.work_days):
            raise ValidationError("work_days must be weekday indices 0-6")
        if int(self.break_duration_minutes) < 0:
            raise ValidationError("break_duration_minutes must not be negative")
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValidationError("effective_to must be >= effective_from")

    @property
    def label(self) -> str:
        return SCHEDULE_TYPE_LABELS.get(self.schedule_type, self.schedule_type.value)

    def covers(self, day: date) -> bool:
        if not self.is_active or day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to

    def is_work_day(self, day: date) -> bool:
        return self.covers(day) and day.weekday() in self.work_days

    def expected_minutes_on(self, day: date) -> int:
        """Contractual minutes for `day`; rest days expect nothing."""
        return self.expected_daily_minutes if self.is_work_day(day) else 0

    @property
    def expected_daily_minutes(self) -> int:
        if self.start_time is None or self.end_time is None:
            return STANDARD_DAILY_MINUTES

        anchor = date(2000, 1, 3)
        span = shift_minutes(datetime.combine(anchor, self.start_time), datetime.combine(anchor, self.end_time))
        return max(span - int(self.break_duration_minutes), 0)
