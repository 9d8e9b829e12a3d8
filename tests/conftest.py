from __future__ import annotations

import itertools
import threading
from datetime import date, datetime

import pytest

from timecard_compliance.approvals.model import ApprovalSettings
from timecard_compliance.core.enums import EntryStatus
from timecard_compliance.core.exceptions import DuplicateOpenEntry, NotPending
from timecard_compliance.entries.model import TimeEntry


class FakeEntriesRepo:
    """In-memory rows with the same guards as the MySQL tables.

    History and audit rows written alongside a change land in `history` and
    `audit`.
    """

    def __init__(self):
        self._rows: dict[str, TimeEntry] = {}
        self._lock = threading.Lock()
        self.saved: list[TimeEntry] = []
        self.history: list = []
        self.audit: list = []

    def add(self, entry: TimeEntry) -> TimeEntry:
        self._rows[entry.entry_id] = entry
        return entry

    def all(self) -> list[TimeEntry]:
        return list(self._rows.values())

    def find_open_entries(self, *, user_id, tenant_id):
        return [e for e in self._rows.values() if e.user_id == user_id and e.tenant_id == tenant_id and e.is_open]

    def find_entries_in_range(self, *, user_id, tenant_id, start: date, end: date):
        rows = [
            e
            for e in self._rows.values()
            if e.user_id == user_id and e.tenant_id == tenant_id and e.check_in and start <= e.check_in.date() <= end
        ]
        return sorted(rows, key=lambda e: e.check_in)

    def get_by_id(self, *, entry_id, tenant_id):
        entry = self._rows.get(entry_id)
        if entry is None or entry.tenant_id != tenant_id:
            return None
        return entry

    def save(self, entry: TimeEntry, *, audit=None) -> TimeEntry:
        with self._lock:
            if entry.is_open and any(
                e.is_open and e.tenant_id == entry.tenant_id and e.user_id == entry.user_id
                for e in self._rows.values()
            ):
                raise DuplicateOpenEntry("An open entry already exists; check out first")
            self._rows[entry.entry_id] = entry
            self.saved.append(entry)
            if audit is not None:
                self.audit.append(audit)
        return entry

    def close_entry(self, entry: TimeEntry, *, audit=None) -> bool:
        with self._lock:
            current = self._rows.get(entry.entry_id)
            if current is None or not current.is_open:
                return False
            self._rows[entry.entry_id] = entry
            self.saved.append(entry)
            if audit is not None:
                self.audit.append(audit)
            return True

    def transition_status(self, entry: TimeEntry, *, expected, history, audit=None) -> TimeEntry:
        with self._lock:
            current = self._rows.get(entry.entry_id)
            if current is None or current.status != expected:
                raise NotPending(f"Entry {entry.entry_id} is no longer {expected.value}")
            self._rows[entry.entry_id] = entry
            self.history.append(history)
            if audit is not None:
                self.audit.append(audit)
        return entry

    def list_pending(self, *, tenant_id, limit=500):
        rows = [e for e in self._rows.values() if e.tenant_id == tenant_id and e.status == EntryStatus.PENDING]
        return rows[:limit]

    def last_record(self, *, tenant_id):
        sealed = [e for e in self._rows.values() if e.tenant_id == tenant_id and e.nsr is not None]
        return max(sealed, key=lambda e: e.nsr) if sealed else None

    def list_for_integrity(self, *, tenant_id):
        sealed = [e for e in self._rows.values() if e.tenant_id == tenant_id and e.nsr is not None]
        return sorted(sealed, key=lambda e: e.nsr)

    def list_for_rebuild(self, *, tenant_id):
        rows = [e for e in self._rows.values() if e.tenant_id == tenant_id]
        return sorted(rows, key=lambda e: (e.created_at, e.nsr or 0))

    def reseal(self, entries, *, audits=()):
        with self._lock:
            for entry in entries:
                self._rows[entry.entry_id] = entry
            self.audit.extend(audits)



class FakeSchedulesRepo:
    def __init__(self, schedules=()):
        self.schedules = list(schedules)

    def get_active_schedule(self, *, user_id, tenant_id, on_date):
        for s in self.schedules:
            if s.user_id == user_id and s.tenant_id == tenant_id and s.covers(on_date):
                return s
        return None


class FakeSettingsRepo:
    def __init__(self, settings=()):
        self._by_tenant = {s.tenant_id: s for s in settings}

    def put(self, settings: ApprovalSettings) -> None:
        self._by_tenant[settings.tenant_id] = settings

    def get_approval_settings(self, *, tenant_id):
        return self._by_tenant.get(tenant_id)


class FakeGroupsRepo:
    def __init__(self, members=None):
        self._members = members or {}

    def get_group_members(self, *, group_id, tenant_id):
        return list(self._members.get((tenant_id, group_id), ()))


class FakeHistoryRepo:
    def __init__(self, entries: FakeEntriesRepo):
        self._entries = entries

    @property
    def records(self):
        return self._entries.history

    def list_for_entry(self, *, entry_id, tenant_id):
        return [r for r in self.records if r.timecard_entry_id == entry_id and r.tenant_id == tenant_id]


class FakeAuditRepo:
    def __init__(self, entries: FakeEntriesRepo):
        self._entries = entries

    def list_for_entry(self, *, entry_id, tenant_id):
        return [r for r in self._entries.audit if r.timecard_entry_id == entry_id and r.tenant_id == tenant_id]


@pytest.fixture
def entries_repo():
    return FakeEntriesRepo()


@pytest.fixture
def schedules_repo():
    return FakeSchedulesRepo()


@pytest.fixture
def settings_repo():
    return FakeSettingsRepo(
        [ApprovalSettings(tenant_id="t1", default_approvers=frozenset({"manager"}), approval_group_id="g1")]
    )


@pytest.fixture
def groups_repo():
    return FakeGroupsRepo({("t1", "g1"): ["lead"]})


@pytest.fixture
def history_repo(entries_repo):
    return FakeHistoryRepo(entries_repo)


@pytest.fixture
def audit_repo(entries_repo):
    return FakeAuditRepo(entries_repo)


@pytest.fixture
def make_entry():
    counter = itertools.count(1)

    def factory(check_in, check_out=None, **kwargs):
        kwargs.setdefault("entry_id", f"e{next(counter)}")
        kwargs.setdefault("tenant_id", "t1")
        kwargs.setdefault("user_id", "u1")
        kwargs.setdefault("created_at", check_in or datetime(2024, 3, 4, 0, 0))
        return TimeEntry(check_in=check_in, check_out=check_out, **kwargs)

    return factory
