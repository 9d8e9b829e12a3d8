from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import ApprovalMethod, EntryStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json_list, normalize_mysql_datetime
from .model import ApprovalHistory, ApprovalSettings
from .repository import ApprovalHistoryRepository, ApprovalSettingsRepository, GroupMembershipRepository


class MySQLApprovalSettingsRepository(ApprovalSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_approval_settings(self, *, tenant_id: str) -> Optional[ApprovalSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT tenant_id, approval_type, auto_approve_complete, auto_approve_after_hours,
                       require_approval_for, default_approvers, approval_group_id
                FROM timecard_approval_settings
                WHERE tenant_id=%s
                """,
                (tenant_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ApprovalSettings(
                tenant_id=str(r["tenant_id"]),
                approval_type=r["approval_type"],
                auto_approve_complete=bool(r.get("auto_approve_complete")),
                auto_approve_after_hours=int(r.get("auto_approve_after_hours") or 0),
                require_approval_for=frozenset(load_json_list(r.get("require_approval_for"))),
                default_approvers=frozenset(str(a) for a in load_json_list(r.get("default_approvers"))),
                approval_group_id=r.get("approval_group_id"),
            )


class MySQLGroupMembershipRepository(GroupMembershipRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_group_members(self, *, group_id: str, tenant_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id FROM user_group_memberships WHERE tenant_id=%s AND group_id=%s",
                (tenant_id, group_id),
            )
            return [str(r["user_id"]) for r in fetchall(cur)]


def insert_history_row(cur, record: ApprovalHistory) -> None:
    """Insert on an open cursor so the row commits with the status change."""

    cur.execute(
        """
        INSERT INTO timecard_approval_history(
            history_id, tenant_id, timecard_entry_id, approval_status, approved_by,
            approval_date, rejection_reason, comments, approval_method
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            record.history_id,
            record.tenant_id,
            record.timecard_entry_id,
            record.approval_status.value,
            record.approved_by,
            record.approval_date,
            record.rejection_reason,
            record.comments,
            record.approval_method.value,
        ),
    )


class MySQLApprovalHistoryRepository(ApprovalHistoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_entry(self, *, entry_id: str, tenant_id: str) -> Sequence[ApprovalHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT history_id, tenant_id, timecard_entry_id, approval_status, approved_by,
                       approval_date, rejection_reason, comments, approval_method
                FROM timecard_approval_history
                WHERE tenant_id=%s AND timecard_entry_id=%s
                ORDER BY approval_date ASC
                """,
                (tenant_id, entry_id),
            )
            return [
                ApprovalHistory(
                    history_id=str(r["history_id"]),
                    tenant_id=str(r["tenant_id"]),
                    timecard_entry_id=str(r["timecard_entry_id"]),
                    approval_status=EntryStatus(r["approval_status"]),
                    approved_by=r.get("approved_by"),
                    approval_date=normalize_mysql_datetime(r["approval_date"]),
                    approval_method=ApprovalMethod(r["approval_method"]),
                    rejection_reason=r.get("rejection_reason"),
                    comments=r.get("comments"),
                )
                for r in fetchall(cur)
            ]
