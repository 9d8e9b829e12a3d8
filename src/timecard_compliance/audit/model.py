"""Audit trail of time entries.

Every create, check-out, approval and rejection leaves one row with the
before/after values of the entry and who made the change. Each row carries a
SHA-256 hash over its own content so an edited row can be spotted later.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import AuditAction
from ..entries.model import TimeEntry


@dataclass(frozen=True)
class AuditLogEntry:
    audit_id: str
    tenant_id: str
    timecard_entry_id: str
    nsr: Optional[int]
    action: AuditAction
    performed_by: Optional[str]
    performed_at: datetime
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    reason: Optional[str] = None
    audit_hash: str = ""
    is_system_generated: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.action, AuditAction):
            object.__setattr__(self, "action", AuditAction(self.action))

    @property
    def is_intact(self) -> bool:
        return self.audit_hash == generate_audit_hash(self)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def entry_snapshot(entry: TimeEntry) -> dict[str, Any]:
    """JSON-friendly values of the mutable columns of an entry."""

    return {
        "check_in": _iso(entry.check_in),
        "check_out": _iso(entry.check_out),
        "break_start": _iso(entry.break_start),
        "break_end": _iso(entry.break_end),
        "total_hours": str(entry.total_hours) if entry.total_hours is not None else None,
        "status": entry.status.value,
        "notes": entry.notes,
        "location": entry.location,
        "approved_by": entry.approved_by,
        "nsr": entry.nsr,
    }


def generate_audit_hash(row: AuditLogEntry) -> str:
    payload = {
        "tenantId": row.tenant_id,
        "timecardEntryId": row.timecard_entry_id,
        "nsr": row.nsr,
        "action": row.action.value,
        "performedBy": row.performed_by,
        "performedAt": _iso(row.performed_at),
        "oldValues": row.old_values,
        "newValues": row.new_values,
        "reason": row.reason,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def build_audit_entry(
    *,
    action: AuditAction,
    after: TimeEntry,
    performed_at: datetime,
    performed_by: Optional[str] = None,
    before: Optional[TimeEntry] = None,
    reason: Optional[str] = None,
    is_system_generated: bool = False,
    audit_id: Optional[str] = None,
) -> AuditLogEntry:
    row = AuditLogEntry(
        audit_id=audit_id or str(uuid.uuid4()),
        tenant_id=after.tenant_id,
        timecard_entry_id=after.entry_id,
        nsr=after.nsr,
        action=action,
        performed_by=performed_by,
        performed_at=performed_at.replace(microsecond=0),
        old_values=entry_snapshot(before) if before is not None else None,
        new_values=entry_snapshot(after),
        reason=(reason or "").strip() or None,
        is_system_generated=is_system_generated,
    )
    object.__setattr__(row, "audit_hash", generate_audit_hash(row))
    return row
