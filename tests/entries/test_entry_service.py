from __future__ import annotations

import threading
from datetime import date, datetime, time
from decimal import Decimal

import pytest

from timecard_compliance.core.enums import AuditAction, ScheduleType
from timecard_compliance.core.exceptions import (
    ConcurrentModification,
    DuplicateOpenEntry,
    EntryNotFound,
    NoActiveEntry,
)
from timecard_compliance.entries.service import TimeEntryService, UserLockRegistry
from timecard_compliance.schedules.model import WorkSchedule


def test_check_in_then_check_out_long_shift(entries_repo):
    service = TimeEntryService(entries_repo)

    checked_in = service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))
    assert checked_in.entry.is_open
    assert checked_in.entry.entry.nsr == 1
    assert checked_in.validation.has_code("in_progress")

    result = service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 18, 0))

    assert result.entry.break_start == datetime(2024, 3, 4, 12, 30)
    assert result.entry.break_end == datetime(2024, 3, 4, 13, 30)
    assert result.entry.entry.total_hours == Decimal("9.00")
    assert result.validation.is_consistent
    stored = entries_repo.get_by_id(entry_id=result.entry.entry_id, tenant_id="t1")
    assert stored.check_out == datetime(2024, 3, 4, 18, 0)
    assert stored.break_start is None
    assert stored.total_hours == Decimal("9.00")


def test_very_short_shift_is_flagged(entries_repo):
    service = TimeEntryService(entries_repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 9, 0))

    result = service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 9, 3))

    assert not result.validation.is_consistent
    assert "excessively short shift" in result.validation.observations
    assert result.entry.entry.total_hours == Decimal("0.05")


def test_check_out_without_open_entry_persists_nothing(entries_repo):
    service = TimeEntryService(entries_repo)

    with pytest.raises(NoActiveEntry):
        service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 18, 0))
    assert entries_repo.all() == []


def test_second_check_in_is_rejected(entries_repo):
    service = TimeEntryService(entries_repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))

    with pytest.raises(DuplicateOpenEntry):
        service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 5))
    assert len(entries_repo.all()) == 1


def test_other_users_are_independent(entries_repo):
    service = TimeEntryService(entries_repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))
    service.check_in(tenant_id="t1", user_id="u2", now=datetime(2024, 3, 4, 8, 1))

    nsrs = sorted(e.nsr for e in entries_repo.all())
    assert nsrs == [1, 2]


def test_lost_close_race_raises_conflict(entries_repo):
    class RacingRepo(type(entries_repo)):
        def close_entry(self, entry, **kwargs):
            return False

    repo = RacingRepo()
    service = TimeEntryService(repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))

    with pytest.raises(ConcurrentModification):
        service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 17, 0))


def test_check_out_with_active_schedule(entries_repo, schedules_repo):
    schedules_repo.schedules.append(
        WorkSchedule(
            user_id="u1",
            tenant_id="t1",
            schedule_type=ScheduleType.SIX_BY_ONE,
            effective_from=date(2024, 1, 1),
            start_time=time(8, 0),
            end_time=time(14, 0),
            break_duration_minutes=0,
        )
    )
    service = TimeEntryService(entries_repo, schedules_repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))

    result = service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 14, 0))

    assert result.entry.entry.total_hours == Decimal("6.00")


def test_concurrent_check_ins_leave_one_open_entry(entries_repo):
    service = TimeEntryService(entries_repo, locks=UserLockRegistry())
    errors = []

    def punch():
        try:
            service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))
        except DuplicateOpenEntry as e:
            errors.append(e)

    threads = [threading.Thread(target=punch) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(entries_repo.find_open_entries(user_id="u1", tenant_id="t1")) == 1
    assert len(errors) == 7


def test_integrity_chain_detects_tampering(entries_repo):
    service = TimeEntryService(entries_repo)
    for user in ("u1", "u2", "u3"):
        service.check_in(tenant_id="t1", user_id=user, now=datetime(2024, 3, 4, 8, 0))

    assert service.verify_integrity(tenant_id="t1").is_valid

    victim = next(e for e in entries_repo.all() if e.nsr == 2)
    entries_repo.add(victim.with_changes(check_in=datetime(2024, 3, 4, 7, 0)))

    report = service.verify_integrity(tenant_id="t1")
    assert not report.is_valid
    assert report.checked == 3


def test_storage_rejects_second_open_entry_when_read_is_stale(entries_repo):
    # Another worker process does not share the in-process lock.
    class StaleReadRepo(type(entries_repo)):
        def find_open_entries(self, **kwargs):
            return []

    repo = StaleReadRepo()
    service = TimeEntryService(repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))

    with pytest.raises(DuplicateOpenEntry):
        service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 5))
    assert len(repo.all()) == 1
    assert len(repo.audit) == 1


def test_lock_registry_drops_idle_keys(entries_repo):
    locks = UserLockRegistry()
    with locks.hold(("user", "t1", "u1")):
        with locks.hold(("tenant", "t1")):
            assert len(locks) == 2
    assert len(locks) == 0

    service = TimeEntryService(entries_repo, locks=locks)
    for user in ("u1", "u2", "u3"):
        service.check_in(tenant_id="t1", user_id=user, now=datetime(2024, 3, 4, 8, 0))
    assert len(locks) == 0


def test_punches_leave_audit_trail(entries_repo, audit_repo):
    service = TimeEntryService(entries_repo, audit_log=audit_repo)
    checked_in = service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))
    service.check_out(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 17, 0))

    trail = service.audit_trail(entry_id=checked_in.entry.entry_id, tenant_id="t1")

    assert [r.action for r in trail] == [AuditAction.CREATE, AuditAction.UPDATE]
    create, update = trail
    assert create.old_values is None
    assert create.nsr == 1
    assert create.performed_by == "u1"
    assert update.old_values["check_out"] is None
    assert update.new_values["check_out"] == "2024-03-04T17:00:00"
    assert update.new_values["total_hours"] == "8.00"
    assert all(r.is_intact for r in trail)


def test_audit_trail_of_unknown_entry(entries_repo, audit_repo):
    service = TimeEntryService(entries_repo, audit_log=audit_repo)

    with pytest.raises(EntryNotFound):
        service.audit_trail(entry_id="nope", tenant_id="t1")


def test_rebuild_repairs_tampered_chain(entries_repo):
    service = TimeEntryService(entries_repo)
    for hour, user in ((8, "u1"), (9, "u2"), (10, "u3")):
        service.check_in(tenant_id="t1", user_id=user, now=datetime(2024, 3, 4, hour, 0))
    victim = next(e for e in entries_repo.all() if e.nsr == 2)
    entries_repo.add(victim.with_changes(check_in=datetime(2024, 3, 4, 7, 0)))
    assert not service.verify_integrity(tenant_id="t1").is_valid

    result = service.rebuild_integrity(tenant_id="t1", actor_id="manager", now=datetime(2024, 3, 5, 9, 0))

    assert (result.fixed, result.checked) == (2, 3)
    assert service.verify_integrity(tenant_id="t1").is_valid
    rebuilt = [r for r in entries_repo.audit if r.reason == "integrity chain rebuilt"]
    assert len(rebuilt) == 2
    assert all(r.is_system_generated and r.performed_by == "manager" for r in rebuilt)


def test_rebuild_seals_legacy_rows_in_creation_order(entries_repo, make_entry):
    service = TimeEntryService(entries_repo)
    service.check_in(tenant_id="t1", user_id="u1", now=datetime(2024, 3, 4, 8, 0))
    service.check_in(tenant_id="t1", user_id="u2", now=datetime(2024, 3, 4, 9, 0))
    legacy = entries_repo.add(
        make_entry(datetime(2024, 3, 4, 8, 30), datetime(2024, 3, 4, 12, 0), user_id="u3")
    )

    result = service.rebuild_integrity(tenant_id="t1", actor_id="manager")

    assert (result.fixed, result.checked) == (2, 3)
    assert entries_repo.get_by_id(entry_id=legacy.entry_id, tenant_id="t1").nsr == 2
    report = service.verify_integrity(tenant_id="t1")
    assert report.is_valid
    assert report.checked == 3
