from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from ..common.validators import require_non_empty
from ..core.enums import EntryStatus, PunchKind
from ..core.exceptions import InvalidSequence


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: one punch-pair candidate for one user on one day.

    Construction rejects structurally impossible rows (a check-out with no
    check-in, a break end with no break start). Ordering problems between the
    timestamps are kept as data and reported by the consistency validator.
    """

    entry_id: str
    tenant_id: str
    user_id: str
    check_in: Optional[datetime]
    check_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    total_hours: Optional[Decimal] = None
    status: EntryStatus = EntryStatus.PENDING
    is_manual_entry: bool = False
    notes: Optional[str] = None
    location: Optional[str] = None
    approved_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    nsr: Optional[int] = None
    record_hash: Optional[str] = None
    previous_record_hash: Optional[str] = None

    def __post_init__(self) -> None:
        require_non_empty(self.tenant_id, "tenant_id")
        require_non_empty(self.user_id, "user_id")
        if self.check_out is not None and self.check_in is None:
            raise InvalidSequence("check_out requires check_in")
        if self.break_end is not None and self.break_start is None:
            raise InvalidSequence("break_end requires break_start")
        if not isinstance(self.status, EntryStatus):
            object.__setattr__(self, "status", EntryStatus(self.status))

    @property
    def is_open(self) -> bool:
        return self.check_in is not None and self.check_out is None

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    @property
    def work_date(self) -> Optional[date]:
        return self.check_in.date() if self.check_in else None

    def with_changes(self, **changes) -> "TimeEntry":
        return replace(self, **changes)


@dataclass(frozen=True)
class PunchAction:
    """A check-in or check-out request coming from the boundary."""

    kind: PunchKind
    tenant_id: str
    user_id: str
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    is_manual_entry: bool = False

    def __post_init__(self) -> None:
        require_non_empty(self.tenant_id, "tenant_id")
        require_non_empty(self.user_id, "user_id")
        if not isinstance(self.kind, PunchKind):
            object.__setattr__(self, "kind", PunchKind(self.kind))
        if self.break_end is not None and self.break_start is None:
            raise InvalidSequence("break_end requires break_start")


@dataclass(frozen=True)
class NormalizedEntry:
    """Read view of an entry with its effective break.

    `entry` is the record to persist and never carries an inferred break;
    `break_start`/`break_end` are the effective break used for compliance and
    hour calculation.
    """

    entry: TimeEntry
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    break_inferred: bool = False

    @property
    def entry_id(self) -> str:
        return self.entry.entry_id

    @property
    def tenant_id(self) -> str:
        return self.entry.tenant_id

    @property
    def user_id(self) -> str:
        return self.entry.user_id

    @property
    def check_in(self) -> Optional[datetime]:
        return self.entry.check_in

    @property
    def check_out(self) -> Optional[datetime]:
        return self.entry.check_out

    @property
    def status(self) -> EntryStatus:
        return self.entry.status

    @property
    def is_open(self) -> bool:
        return self.entry.is_open

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    @property
    def work_date(self) -> Optional[date]:
        return self.entry.work_date


EntryLike = Union[TimeEntry, NormalizedEntry]
