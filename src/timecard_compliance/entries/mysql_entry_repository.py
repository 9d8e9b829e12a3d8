from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..approvals.model import ApprovalHistory
from ..approvals.mysql_approval_repository import insert_history_row
from ..audit.model import AuditLogEntry
from ..audit.mysql_audit_repository import insert_audit_row
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import EntryStatus
from ..core.exceptions import ConcurrentModification, DuplicateOpenEntry, NotPending
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_datetime, normalize_mysql_decimal
from .model import TimeEntry
from .repository import TimeEntryRepository

_COLUMNS = """
    entry_id, tenant_id, user_id, check_in, check_out, break_start, break_end,
    total_hours, status, is_manual_entry, notes, location, approved_by,
    nsr, record_hash, previous_record_hash, created_at, updated_at
"""

_OPEN_ENTRY_KEY = "timecard_entries_one_open_uq"
_NSR_KEY = "timecard_entries_tenant_nsr_uq"


def _to_entry(r: dict) -> TimeEntry:
    return TimeEntry(
        entry_id=str(r["entry_id"]),
        tenant_id=str(r["tenant_id"]),
        user_id=str(r["user_id"]),
        check_in=normalize_mysql_datetime(r.get("check_in")),
        check_out=normalize_mysql_datetime(r.get("check_out")),
        break_start=normalize_mysql_datetime(r.get("break_start")),
        break_end=normalize_mysql_datetime(r.get("break_end")),
        total_hours=normalize_mysql_decimal(r.get("total_hours")),
        status=EntryStatus(r["status"]),
        is_manual_entry=bool(r.get("is_manual_entry")),
        notes=r.get("notes"),
        location=r.get("location"),
        approved_by=r.get("approved_by"),
        nsr=int(r["nsr"]) if r.get("nsr") is not None else None,
        record_hash=r.get("record_hash"),
        previous_record_hash=r.get("previous_record_hash"),
        created_at=normalize_mysql_datetime(r.get("created_at")),
        updated_at=normalize_mysql_datetime(r.get("updated_at")),
    )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_open_entries(self, *, user_id: str, tenant_id: str) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s AND user_id=%s AND check_in IS NOT NULL AND check_out IS NULL
                ORDER BY created_at ASC
                """,
                (tenant_id, user_id),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def find_entries_in_range(self, *, user_id: str, tenant_id: str, start: date, end: date) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s AND user_id=%s AND check_in BETWEEN %s AND %s
                ORDER BY check_in ASC, created_at ASC
                """,
                (tenant_id, user_id, datetime.combine(start, time.min), datetime.combine(end, time.max)),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def get_by_id(self, *, entry_id: str, tenant_id: str) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM timecard_entries WHERE entry_id=%s AND tenant_id=%s",
                (entry_id, tenant_id),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def save(self, entry: TimeEntry, *, audit: Optional[AuditLogEntry] = None) -> TimeEntry:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO timecard_entries(
                        entry_id, tenant_id, user_id, check_in, check_out, break_start, break_end,
                        total_hours, status, is_manual_entry, notes, location, approved_by,
                        nsr, record_hash, previous_record_hash, created_at, updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        entry.entry_id,
                        entry.tenant_id,
                        entry.user_id,
                        entry.check_in,
                        entry.check_out,
                        entry.break_start,
                        entry.break_end,
                        entry.total_hours,
                        entry.status.value,
                        int(entry.is_manual_entry),
                        entry.notes,
                        entry.location,
                        entry.approved_by,
                        entry.nsr,
                        entry.record_hash,
                        entry.previous_record_hash,
                        entry.created_at,
                        entry.updated_at,
                    ),
                )
                if audit is not None:
                    insert_audit_row(cur, audit)
        except mysql.connector.IntegrityError as e:
            # Unique keys catch check-ins racing in other processes.
            if e.errno == errorcode.ER_DUP_ENTRY and _OPEN_ENTRY_KEY in str(e):
                raise DuplicateOpenEntry("An open entry already exists; check out first") from None
            if e.errno == errorcode.ER_DUP_ENTRY and _NSR_KEY in str(e):
                raise ConcurrentModification("Record number taken by a concurrent check-in; retry") from None
            raise
        return entry

    def close_entry(self, entry: TimeEntry, *, audit: Optional[AuditLogEntry] = None) -> bool:
        # Compare-and-set: only an entry that is still open gets closed.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timecard_entries
                SET check_out=%s, break_start=%s, break_end=%s, total_hours=%s,
                    notes=%s, location=%s, updated_at=%s
                WHERE entry_id=%s AND tenant_id=%s AND check_out IS NULL
                """,
                (
                    entry.check_out,
                    entry.break_start,
                    entry.break_end,
                    entry.total_hours,
                    entry.notes,
                    entry.location,
                    entry.updated_at,
                    entry.entry_id,
                    entry.tenant_id,
                ),
            )
            if cur.rowcount == 0:
                return False
            if audit is not None:
                insert_audit_row(cur, audit)
            return True

    def transition_status(
        self,
        entry: TimeEntry,
        *,
        expected: EntryStatus,
        history: ApprovalHistory,
        audit: Optional[AuditLogEntry] = None,
    ) -> TimeEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timecard_entries
                SET status=%s, approved_by=%s, updated_at=%s
                WHERE entry_id=%s AND tenant_id=%s AND status=%s
                """,
                (
                    entry.status.value,
                    entry.approved_by,
                    entry.updated_at,
                    entry.entry_id,
                    entry.tenant_id,
                    expected.value,
                ),
            )
            if cur.rowcount == 0:
                # Raising inside the cursor block rolls the transaction back.
                raise NotPending(f"Entry {entry.entry_id} is no longer {expected.value}")
            insert_history_row(cur, history)
            if audit is not None:
                insert_audit_row(cur, audit)
        return entry

    def list_pending(self, *, tenant_id: str, limit: int = DEFAULT_PENDING_LIMIT) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s AND status=%s
                ORDER BY created_at ASC
                LIMIT %s
                """,
                (tenant_id, EntryStatus.PENDING.value, int(limit)),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def last_record(self, *, tenant_id: str) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s AND nsr IS NOT NULL
                ORDER BY nsr DESC
                LIMIT 1
                """,
                (tenant_id,),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def list_for_integrity(self, *, tenant_id: str) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s AND nsr IS NOT NULL
                ORDER BY nsr ASC
                """,
                (tenant_id,),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def list_for_rebuild(self, *, tenant_id: str) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timecard_entries
                WHERE tenant_id=%s
                ORDER BY created_at ASC, nsr ASC
                """,
                (tenant_id,),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def reseal(self, entries: Sequence[TimeEntry], *, audits: Sequence[AuditLogEntry] = ()) -> None:
        if not entries:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            # Clear first so renumbering never trips the (tenant_id, nsr) unique key midway.
            for entry in entries:
                cur.execute(
                    "UPDATE timecard_entries SET nsr=NULL WHERE entry_id=%s AND tenant_id=%s",
                    (entry.entry_id, entry.tenant_id),
                )
            for entry in entries:
                cur.execute(
                    """
                    UPDATE timecard_entries
                    SET nsr=%s, record_hash=%s, previous_record_hash=%s, updated_at=%s
                    WHERE entry_id=%s AND tenant_id=%s
                    """,
                    (
                        entry.nsr,
                        entry.record_hash,
                        entry.previous_record_hash,
                        entry.updated_at,
                        entry.entry_id,
                        entry.tenant_id,
                    ),
                )
            for audit in audits:
                insert_audit_row(cur, audit)
