from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..common.datetime_utils import shift_end, shift_minutes
from ..common.validators import require_same_tenant
from ..core.constants import INFERRED_BREAK_MINUTES, LONG_SHIFT_THRESHOLD_MINUTES
from ..core.enums import EntryStatus, PunchKind
from ..core.exceptions import DuplicateOpenEntry, NoActiveEntry, TenantMismatch
from .model import EntryLike, NormalizedEntry, PunchAction, TimeEntry


def select_open_entry(entries: Iterable[TimeEntry]) -> Optional[TimeEntry]:
    """Most recently created open entry.

    Entries are walked in chronological `created_at` order so the last open one
    wins; on equal `created_at` the later row in the input wins.
    """

    open_entries = [e for e in entries if e.is_open]
    if not open_entries:
        return None
    open_entries.sort(key=lambda e: e.created_at or e.check_in or datetime.min)
    return open_entries[-1]


class EntryNormalizer:
    """Pairs punches into entries and infers a rest break on long shifts."""

    def __init__(
        self,
        *,
        long_shift_threshold_minutes: int = LONG_SHIFT_THRESHOLD_MINUTES,
        inferred_break_minutes: int = INFERRED_BREAK_MINUTES,
        id_factory=None,
    ):
        self._threshold = int(long_shift_threshold_minutes)
        self._break_minutes = int(inferred_break_minutes)
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def normalize(self, action: PunchAction, open_entry: Optional[TimeEntry], now: datetime) -> NormalizedEntry:
        if open_entry is not None:
            require_same_tenant(action.tenant_id, open_entry.tenant_id)
            if open_entry.user_id != action.user_id:
                raise TenantMismatch("Open entry belongs to another user")
            if not open_entry.is_open:
                open_entry = None

        if action.kind == PunchKind.CHECK_IN:
            if open_entry is not None:
                raise DuplicateOpenEntry("An open entry already exists; check out first")
            entry = TimeEntry(
                entry_id=self._id_factory(),
                tenant_id=action.tenant_id,
                user_id=action.user_id,
                check_in=now,
                status=EntryStatus.PENDING,
                is_manual_entry=action.is_manual_entry,
                notes=action.notes,
                location=action.location,
                created_at=now,
                updated_at=now,
            )
            return NormalizedEntry(entry=entry)

        if open_entry is None:
            raise NoActiveEntry("No open entry to check out")

        changes = {"check_out": now, "updated_at": now}
        if action.break_start is not None and open_entry.break_start is None:
            changes["break_start"] = action.break_start
            changes["break_end"] = action.break_end
        elif action.break_end is not None and open_entry.break_end is None:
            changes["break_end"] = action.break_end
        if action.notes:
            changes["notes"] = action.notes
        if action.location and not open_entry.location:
            changes["location"] = action.location

        return self.normalize_existing(open_entry.with_changes(**changes))

    def normalize_existing(self, entry: EntryLike) -> NormalizedEntry:
        """Apply break inference to a stored entry. Idempotent."""

        if isinstance(entry, NormalizedEntry):
            return entry

        if entry.break_start is not None:
            return NormalizedEntry(entry=entry, break_start=entry.break_start, break_end=entry.break_end)

        inferred = self.infer_break(entry)
        if inferred is None:
            return NormalizedEntry(entry=entry)

        start, end = inferred
        return NormalizedEntry(entry=entry, break_start=start, break_end=end, break_inferred=True)

    def infer_break(self, entry: TimeEntry) -> Optional[tuple[datetime, datetime]]:
        if entry.check_in is None or entry.check_out is None:
            return None
        if entry.break_start is not None or entry.break_end is not None:
            return None

        span = shift_minutes(entry.check_in, entry.check_out)
        if span <= self._threshold:
            return None

        end = shift_end(entry.check_in, entry.check_out)
        midpoint = entry.check_in + (end - entry.check_in) / 2
        half = timedelta(minutes=self._break_minutes) / 2
        return midpoint - half, midpoint + half
