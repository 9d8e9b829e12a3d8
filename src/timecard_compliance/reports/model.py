from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..core.enums import ReportKind
from ..hours.model import PeriodSummary


@dataclass(frozen=True)
class AttendanceRow:
    """Read-model for one day of the attendance (espelho de ponto) report."""

    work_date: str
    weekday: str
    first_entry: str
    first_exit: str
    second_entry: str
    second_exit: str
    total_hours: Decimal
    status: str
    observations: str
    overtime_hours: Decimal
    schedule_type: str
    is_consistent: bool
    break_inferred: bool = False


@dataclass(frozen=True)
class OvertimeRow:
    work_date: str
    weekday: str
    total_hours: Decimal
    overtime_minutes: int
    overtime_hours: Decimal


@dataclass(frozen=True)
class ComplianceRow:
    work_date: str
    entry_id: str
    is_consistent: bool
    issues: tuple[dict, ...]


@dataclass(frozen=True)
class OvertimeSummary:
    total_overtime_hours: Decimal
    average_overtime_per_day: Decimal
    overtime_days: int


@dataclass(frozen=True)
class ComplianceSummary:
    total_entries: int
    consistent_entries: int
    compliance_rate: Decimal
    issues_by_severity: dict
    high_severity_count: int


@dataclass(frozen=True)
class Report:
    kind: ReportKind
    user_id: str
    tenant_id: str
    start: date
    end: date
    rows: tuple = ()
    period: Optional[PeriodSummary] = None
    overtime: Optional[OvertimeSummary] = None
    compliance: Optional[ComplianceSummary] = None
    warnings: tuple[str, ...] = ()
    truncated: bool = False
    last_processed_date: Optional[date] = None

    def to_dict(self) -> dict:
        def plain(value):
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, Decimal):
                return float(value)
            if isinstance(value, date):
                return value.strftime("%Y-%m-%d")
            if isinstance(value, (list, tuple)):
                return [plain(v) for v in value]
            if isinstance(value, dict):
                return {k: plain(v) for k, v in value.items()}
            if hasattr(value, "__dataclass_fields__"):
                return {k: plain(getattr(value, k)) for k in value.__dataclass_fields__}
            return value

        return plain(self)
