from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .approvals.mysql_approval_repository import (
    MySQLApprovalHistoryRepository,
    MySQLApprovalSettingsRepository,
    MySQLGroupMembershipRepository,
)
from .approvals.repository import ApprovalHistoryRepository, ApprovalSettingsRepository, GroupMembershipRepository
from .approvals.service import ApprovalGate
from .audit.mysql_audit_repository import MySQLAuditLogRepository
from .audit.repository import AuditLogRepository
from .compliance.validator import ConsistencyValidator, default_rules
from .core.constants import LONG_SHIFT_THRESHOLD_MINUTES, STANDARD_DAILY_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .entries.mysql_entry_repository import MySQLTimeEntryRepository
from .entries.normalizer import EntryNormalizer
from .entries.repository import TimeEntryRepository
from .entries.service import TimeEntryService, UserLockRegistry
from .hours.calculator.standard_calculator import StandardHourCalculator
from .hours.service import HourBankService
from .reports.service import ReportAggregator
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository


@dataclass(frozen=True)
class Container:
    entries_repo: TimeEntryRepository
    schedules_repo: ScheduleRepository
    approval_settings_repo: ApprovalSettingsRepository
    groups_repo: GroupMembershipRepository
    history_repo: ApprovalHistoryRepository
    audit_repo: Optional[AuditLogRepository]

    time_entry_service: TimeEntryService
    approval_gate: ApprovalGate
    hour_bank_service: HourBankService
    report_aggregator: ReportAggregator

    report_timeout_seconds: Optional[float] = None
    conn: Optional[DatabaseConnection] = None


def wire_services(
    *,
    entries_repo: TimeEntryRepository,
    schedules_repo: ScheduleRepository,
    approval_settings_repo: ApprovalSettingsRepository,
    groups_repo: GroupMembershipRepository,
    history_repo: ApprovalHistoryRepository,
    audit_repo: Optional[AuditLogRepository] = None,
    long_shift_threshold_minutes: int = LONG_SHIFT_THRESHOLD_MINUTES,
    standard_daily_minutes: int = STANDARD_DAILY_MINUTES,
    report_timeout_seconds: Optional[float] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services on top of any repository implementations."""

    normalizer = EntryNormalizer(long_shift_threshold_minutes=long_shift_threshold_minutes)
    validator = ConsistencyValidator(default_rules(mandatory_break_after_minutes=long_shift_threshold_minutes))
    calculator = StandardHourCalculator(standard_daily_minutes)

    time_entry_service = TimeEntryService(
        entries_repo,
        schedules_repo,
        normalizer=normalizer,
        validator=validator,
        calculator=calculator,
        locks=UserLockRegistry(),
        audit_log=audit_repo,
    )
    approval_gate = ApprovalGate(
        entries_repo,
        approval_settings_repo,
        groups_repo,
        history_repo,
        normalizer=normalizer,
        validator=validator,
        calculator=calculator,
    )
    hour_bank_service = HourBankService(entries_repo, schedules_repo, normalizer=normalizer, calculator=calculator)
    report_aggregator = ReportAggregator(
        entries_repo,
        schedules_repo,
        normalizer=normalizer,
        validator=validator,
        calculator=calculator,
    )

    return Container(
        entries_repo=entries_repo,
        schedules_repo=schedules_repo,
        approval_settings_repo=approval_settings_repo,
        groups_repo=groups_repo,
        history_repo=history_repo,
        audit_repo=audit_repo,
        time_entry_service=time_entry_service,
        approval_gate=approval_gate,
        hour_bank_service=hour_bank_service,
        report_aggregator=report_aggregator,
        report_timeout_seconds=report_timeout_seconds,
        conn=conn,
    )


def build_container(*, db_config: dict, settings=None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    timeout = getattr(settings, "REPORT_TIMEOUT_SECONDS", None)
    return wire_services(
        entries_repo=MySQLTimeEntryRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        approval_settings_repo=MySQLApprovalSettingsRepository(conn),
        groups_repo=MySQLGroupMembershipRepository(conn),
        history_repo=MySQLApprovalHistoryRepository(conn),
        audit_repo=MySQLAuditLogRepository(conn),
        long_shift_threshold_minutes=int(
            getattr(settings, "LONG_SHIFT_THRESHOLD_MINUTES", LONG_SHIFT_THRESHOLD_MINUTES)
        ),
        standard_daily_minutes=int(getattr(settings, "STANDARD_DAILY_MINUTES", STANDARD_DAILY_MINUTES)),
        report_timeout_seconds=float(timeout) if timeout else None,
        conn=conn,
    )
