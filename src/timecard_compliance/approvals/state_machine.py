"""Approval state machine.

    pending --approve--> approved
    pending --reject---> rejected

Both targets are terminal. Transitions are pure: they return the updated
entry and the history row to append, and persist nothing.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from ..core.enums import ApprovalMethod, EntryStatus
from ..core.exceptions import MissingReason, NotPending, ValidationError
from ..entries.model import TimeEntry
from .model import ApprovalHistory

TRANSITIONS = {
    EntryStatus.PENDING: frozenset({EntryStatus.APPROVED, EntryStatus.REJECTED}),
    EntryStatus.APPROVED: frozenset(),
    EntryStatus.REJECTED: frozenset(),
}


def can_transition(current: EntryStatus, target: EntryStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(
    entry: TimeEntry,
    target: EntryStatus,
    *,
    actor_id: Optional[str],
    method: ApprovalMethod,
    now: datetime,
    reason: Optional[str] = None,
    comments: Optional[str] = None,
    history_id: Optional[str] = None,
) -> tuple[TimeEntry, ApprovalHistory]:
    if target not in (EntryStatus.APPROVED, EntryStatus.REJECTED):
        raise ValidationError(f"Unsupported target status: {target.value}")

    reason = (reason or "").strip() or None
    if target == EntryStatus.REJECTED and reason is None:
        raise MissingReason("Rejection reason is required")

    if not can_transition(entry.status, target):
        raise NotPending(f"Entry {entry.entry_id} is already {entry.status.value}")

    updated = entry.with_changes(
        status=target,
        approved_by=actor_id if target == EntryStatus.APPROVED else entry.approved_by,
        updated_at=now,
    )
    record = ApprovalHistory(
        history_id=history_id or str(uuid.uuid4()),
        tenant_id=entry.tenant_id,
        timecard_entry_id=entry.entry_id,
        approval_status=target,
        approved_by=actor_id,
        approval_date=now,
        approval_method=method,
        rejection_reason=reason if target == EntryStatus.REJECTED else None,
        comments=(comments or "").strip() or None,
    )
    return updated, record
