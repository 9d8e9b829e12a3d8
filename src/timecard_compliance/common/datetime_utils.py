from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from ..core.constants import MINUTES_PER_DAY


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time, whole seconds (what a DATETIME column keeps).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().replace(microsecond=0)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end (may be negative)."""
    return int((end - start).total_seconds() // 60)


def shift_minutes(check_in: datetime, check_out: datetime) -> int:
    """Span of a shift in whole minutes, wrapping overnight shifts recorded as clock times."""
    minutes = minutes_between(check_in, check_out)
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def shift_end(check_in: datetime, check_out: datetime) -> datetime:
    """Check-out moved past check-in when the shift wrapped midnight."""
    if check_out < check_in:
        return check_out + timedelta(days=1)
    return check_out


def iter_dates(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def days_in_period(start: date, end: date) -> int:
    return max((end - start).days + 1, 0)


def format_hhmm(value: Optional[datetime]) -> str:
    return value.strftime("%H:%M") if value else "-"
