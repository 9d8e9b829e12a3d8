from __future__ import annotations

from datetime import date
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, load_json_list, normalize_mysql_time
from .model import WorkSchedule
from .repository import ScheduleRepository


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_schedule(self, *, user_id: str, tenant_id: str, on_date: date) -> Optional[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Latest schedule whose effective range contains the date.
            cur.execute(
                """
                SELECT user_id, tenant_id, schedule_type, work_days, start_time, end_time,
                       break_duration_minutes, effective_from, effective_to, is_active
                FROM work_schedules
                WHERE tenant_id=%s AND user_id=%s AND is_active=1
                  AND effective_from <= %s AND (effective_to IS NULL OR effective_to >= %s)
                ORDER BY effective_from DESC
                LIMIT 1
                """,
                (tenant_id, user_id, on_date, on_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return WorkSchedule(
                user_id=str(r["user_id"]),
                tenant_id=str(r["tenant_id"]),
                schedule_type=r["schedule_type"],
                work_days=frozenset(int(d) for d in load_json_list(r.get("work_days"))),
                start_time=normalize_mysql_time(r.get("start_time")),
                end_time=normalize_mysql_time(r.get("end_time")),
                break_duration_minutes=int(r.get("break_duration_minutes") or 0),
                effective_from=r["effective_from"],
                effective_to=r.get("effective_to"),
                is_active=bool(r.get("is_active")),
            )
