from __future__ import annotations

from typing import Sequence

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, load_json_object, normalize_mysql_datetime
from .model import AuditLogEntry
from .repository import AuditLogRepository


def insert_audit_row(cur, row: AuditLogEntry) -> None:
    """Insert on an open cursor so the row commits with the change it audits."""

    cur.execute(
        """
        INSERT INTO timecard_audit_log(
            audit_id, tenant_id, timecard_entry_id, nsr, action, performed_by, performed_at,
            old_values, new_values, reason, audit_hash, is_system_generated
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            row.audit_id,
            row.tenant_id,
            row.timecard_entry_id,
            row.nsr,
            row.action.value,
            row.performed_by,
            row.performed_at,
            dump_json(row.old_values),
            dump_json(row.new_values),
            row.reason,
            row.audit_hash,
            int(row.is_system_generated),
        ),
    )


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_entry(self, *, entry_id: str, tenant_id: str) -> Sequence[AuditLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, tenant_id, timecard_entry_id, nsr, action, performed_by, performed_at,
                       old_values, new_values, reason, audit_hash, is_system_generated
                FROM timecard_audit_log
                WHERE tenant_id=%s AND timecard_entry_id=%s
                ORDER BY performed_at ASC, log_id ASC
                """,
                (tenant_id, entry_id),
            )
            return [
                AuditLogEntry(
                    audit_id=str(r["audit_id"]),
                    tenant_id=str(r["tenant_id"]),
                    timecard_entry_id=str(r["timecard_entry_id"]),
                    nsr=int(r["nsr"]) if r.get("nsr") is not None else None,
                    action=AuditAction(r["action"]),
                    performed_by=r.get("performed_by"),
                    performed_at=normalize_mysql_datetime(r["performed_at"]),
                    old_values=load_json_object(r.get("old_values")),
                    new_values=load_json_object(r.get("new_values")),
                    reason=r.get("reason"),
                    audit_hash=r["audit_hash"],
                    is_system_generated=bool(r.get("is_system_generated")),
                )
                for r in fetchall(cur)
            ]
