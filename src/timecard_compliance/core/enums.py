from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Approval status of a time entry. Mutated only by the approval gate."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PunchKind(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class ScheduleType(str, Enum):
    FIVE_BY_TWO = "5x2"
    SIX_BY_ONE = "6x1"
    TWELVE_BY_THIRTY_SIX = "12x36"
    SHIFT = "shift"
    FLEXIBLE = "flexible"
    INTERMITTENT = "intermittent"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    HIGH = "high"


class ApprovalType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class ApprovalMethod(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class ApprovalCategory(str, Enum):
    """Entry categories that may require a human approver."""

    ALL = "all"
    INCONSISTENCIES = "inconsistencies"
    OVERTIME = "overtime"
    ABSENCES = "absences"


class ReportKind(str, Enum):
    ATTENDANCE = "attendance"
    OVERTIME = "overtime"
    COMPLIANCE = "compliance"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
