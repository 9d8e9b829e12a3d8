from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import WorkSchedule


class ScheduleRepository(Protocol):
    def get_active_schedule(self, *, user_id: str, tenant_id: str, on_date: date) -> Optional[WorkSchedule]:
        """The schedule whose effective range contains `on_date`, if any."""

        raise NotImplementedError
