from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal

from timecard_compliance.audit.model import build_audit_entry, entry_snapshot, generate_audit_hash
from timecard_compliance.core.enums import AuditAction, EntryStatus


def test_snapshot_is_json_friendly(make_entry):
    entry = make_entry(
        datetime(2024, 3, 4, 8, 0),
        datetime(2024, 3, 4, 17, 0),
        total_hours=Decimal("8.00"),
        location="HQ",
        nsr=4,
    )

    snapshot = entry_snapshot(entry)

    assert snapshot["check_in"] == "2024-03-04T08:00:00"
    assert snapshot["break_start"] is None
    assert snapshot["total_hours"] == "8.00"
    assert snapshot["status"] == "pending"
    assert snapshot["nsr"] == 4


def test_audit_row_carries_before_and_after(make_entry):
    before = make_entry(datetime(2024, 3, 4, 8, 0), nsr=1)
    after = before.with_changes(status=EntryStatus.APPROVED, approved_by="manager")

    row = build_audit_entry(
        action=AuditAction.APPROVE,
        before=before,
        after=after,
        performed_by="manager",
        performed_at=datetime(2024, 3, 5, 9, 0, 0, 123456),
    )

    assert row.nsr == 1
    assert row.performed_at == datetime(2024, 3, 5, 9, 0)
    assert row.old_values["status"] == "pending"
    assert row.new_values["approved_by"] == "manager"
    assert row.reason is None
    assert len(row.audit_hash) == 64
    assert row.is_intact


def test_edited_audit_row_is_detected(make_entry):
    row = build_audit_entry(
        action=AuditAction.REJECT,
        after=make_entry(datetime(2024, 3, 4, 8, 0)),
        performed_by="manager",
        performed_at=datetime(2024, 3, 5, 9, 0),
        reason="wrong location",
    )

    edited = dataclasses.replace(row, reason="approved by phone")

    assert not edited.is_intact
    assert generate_audit_hash(edited) != row.audit_hash


def test_hash_ignores_row_identity(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0))
    kwargs = dict(action=AuditAction.CREATE, after=entry, performed_by="u1", performed_at=datetime(2024, 3, 4, 8, 0))

    assert build_audit_entry(**kwargs).audit_hash == build_audit_entry(**kwargs).audit_hash
