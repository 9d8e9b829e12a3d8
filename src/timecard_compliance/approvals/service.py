from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..audit.model import build_audit_entry
from ..common.datetime_utils import now_local
from ..compliance.model import ValidationResult
from ..compliance.validator import ConsistencyValidator
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import ApprovalCategory, ApprovalMethod, ApprovalType, AuditAction, EntryStatus, Severity
from ..core.exceptions import DomainError, EntryNotFound, SettingsMissing, TenantMismatch, Unauthorized
from ..entries.model import TimeEntry
from ..entries.normalizer import EntryNormalizer
from ..entries.repository import TimeEntryRepository
from ..hours.calculator.base import HourCalculator
from ..hours.calculator.standard_calculator import StandardHourCalculator
from ..hours.model import HourComputation
from .model import ApprovalHistory, ApprovalOutcome, ApprovalSettings, BulkApprovalResult
from .repository import ApprovalHistoryRepository, ApprovalSettingsRepository, GroupMembershipRepository
from .state_machine import transition

logger = logging.getLogger(__name__)


def can_approve(
    actor_id: str,
    entry: TimeEntry,
    settings: Optional[ApprovalSettings],
    group_members: Iterable[str] = (),
) -> bool:
    """Authorization check. Denies when settings are missing."""

    if settings is None or not actor_id:
        return False
    if settings.tenant_id != entry.tenant_id:
        return False
    if actor_id in settings.default_approvers:
        return True
    if settings.approval_group_id and actor_id in set(group_members):
        return True
    return False


def is_auto_approvable(
    entry: TimeEntry,
    settings: Optional[ApprovalSettings],
    validation: ValidationResult,
    computation: HourComputation,
    now: datetime,
) -> bool:
    """Auto-approval rule for one pending entry."""

    if settings is None or entry.status != EntryStatus.PENDING:
        return False
    complete = entry.check_in is not None and entry.check_out is not None
    if settings.approval_type == ApprovalType.AUTOMATIC:
        # Open entries wait for their check-out.
        return complete
    if not settings.auto_approve_complete:
        return False

    if not complete or not validation.is_consistent:
        return False

    reference = entry.check_out or entry.created_at
    if reference is None or now - reference < timedelta(hours=int(settings.auto_approve_after_hours)):
        return False

    required = settings.require_approval_for
    if ApprovalCategory.ALL in required:
        return False
    if ApprovalCategory.INCONSISTENCIES in required and any(i.severity != Severity.INFO for i in validation.issues):
        return False
    if ApprovalCategory.OVERTIME in required and computation.overtime_minutes > 0:
        return False
    return True


class ApprovalGate:
    """Authorizes approvers and moves entries out of `pending`.

    Errors are raised to the caller; every decision writes one history row.
    """

    def __init__(
        self,
        entries: TimeEntryRepository,
        settings: ApprovalSettingsRepository,
        groups: GroupMembershipRepository,
        history: ApprovalHistoryRepository,
        *,
        normalizer: Optional[EntryNormalizer] = None,
        validator: Optional[ConsistencyValidator] = None,
        calculator: Optional[HourCalculator] = None,
    ):
        self._entries = entries
        self._settings = settings
        self._groups = groups
        self._history = history
        self._normalizer = normalizer or EntryNormalizer()
        self._validator = validator or ConsistencyValidator()
        self._calculator = calculator or StandardHourCalculator()

    def _load(self, entry_id: str, tenant_id: str) -> TimeEntry:
        entry = self._entries.get_by_id(entry_id=entry_id, tenant_id=tenant_id)
        if entry is None:
            raise EntryNotFound(f"Entry {entry_id} not found")
        if entry.tenant_id != tenant_id:
            raise TenantMismatch("Entry does not belong to the current tenant")
        return entry

    def _members(self, settings: ApprovalSettings, tenant_id: str) -> Sequence[str]:
        if not settings.approval_group_id:
            return ()
        return self._groups.get_group_members(group_id=settings.approval_group_id, tenant_id=tenant_id)

    def _authorize(self, actor_id: str, entry: TimeEntry) -> None:
        settings = self._settings.get_approval_settings(tenant_id=entry.tenant_id)
        if settings is None:
            raise SettingsMissing("Approval settings are not configured for this tenant")
        if not can_approve(actor_id, entry, settings, self._members(settings, entry.tenant_id)):
            raise Unauthorized(f"User {actor_id} is not an approver")

    def _commit(self, before: TimeEntry, updated: TimeEntry, record: ApprovalHistory) -> TimeEntry:
        audit = build_audit_entry(
            action=AuditAction.APPROVE if record.approval_status == EntryStatus.APPROVED else AuditAction.REJECT,
            before=before,
            after=updated,
            performed_by=record.approved_by,
            performed_at=record.approval_date,
            reason=record.rejection_reason,
            is_system_generated=record.approval_method == ApprovalMethod.AUTOMATIC,
        )
        # Status, history and audit rows commit together or not at all.
        return self._entries.transition_status(updated, expected=before.status, history=record, audit=audit)

    def history(self, *, entry_id: str, tenant_id: str) -> Sequence[ApprovalHistory]:
        self._load(entry_id, tenant_id)
        return self._history.list_for_entry(entry_id=entry_id, tenant_id=tenant_id)

    def is_approver(self, *, actor_id: str, tenant_id: str) -> bool:
        """Whether the actor may approve entries of the tenant at all."""

        settings = self._settings.get_approval_settings(tenant_id=tenant_id)
        if settings is None or not actor_id:
            return False
        return actor_id in settings.default_approvers or actor_id in set(self._members(settings, tenant_id))

    def can_approve(self, *, actor_id: str, entry: TimeEntry) -> bool:
        settings = self._settings.get_approval_settings(tenant_id=entry.tenant_id)
        if settings is None:
            return False
        return can_approve(actor_id, entry, settings, self._members(settings, entry.tenant_id))

    def approve(
        self,
        *,
        entry_id: str,
        tenant_id: str,
        actor_id: str,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TimeEntry:
        entry = self._load(entry_id, tenant_id)
        self._authorize(actor_id, entry)
        updated, record = transition(
            entry,
            EntryStatus.APPROVED,
            actor_id=actor_id,
            method=ApprovalMethod.MANUAL,
            now=now or now_local(),
            comments=comments,
        )
        saved = self._commit(entry, updated, record)
        logger.info("Entry %s approved by %s (tenant %s)", entry_id, actor_id, tenant_id)
        return saved

    def reject(
        self,
        *,
        entry_id: str,
        tenant_id: str,
        actor_id: str,
        reason: str,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TimeEntry:
        entry = self._load(entry_id, tenant_id)
        self._authorize(actor_id, entry)
        updated, record = transition(
            entry,
            EntryStatus.REJECTED,
            actor_id=actor_id,
            method=ApprovalMethod.MANUAL,
            now=now or now_local(),
            reason=reason,
            comments=comments,
        )
        saved = self._commit(entry, updated, record)
        logger.info("Entry %s rejected by %s (tenant %s)", entry_id, actor_id, tenant_id)
        return saved

    def bulk_approve(
        self,
        *,
        entry_ids: Sequence[str],
        tenant_id: str,
        actor_id: str,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BulkApprovalResult:
        outcomes = []
        for entry_id in entry_ids:
            try:
                self.approve(entry_id=entry_id, tenant_id=tenant_id, actor_id=actor_id, comments=comments, now=now)
            except DomainError as e:
                logger.warning("Bulk approval of %s failed: %s", entry_id, e)
                outcomes.append(ApprovalOutcome(entry_id=entry_id, ok=False, error=str(e), error_code=e.code))
            else:
                outcomes.append(ApprovalOutcome(entry_id=entry_id, ok=True))

        result = BulkApprovalResult(outcomes=tuple(outcomes))
        logger.info(
            "Bulk approval by %s: %d approved, %d failed", actor_id, result.success_count, result.error_count
        )
        return result

    def auto_approve(self, *, entry_id: str, tenant_id: str, now: Optional[datetime] = None) -> Optional[TimeEntry]:
        """Approve by rule. Returns None when the entry does not qualify."""

        now = now or now_local()
        entry = self._load(entry_id, tenant_id)
        settings = self._settings.get_approval_settings(tenant_id=tenant_id)

        normalized = self._normalizer.normalize_existing(entry)
        validation = self._validator.validate(normalized)
        computation = self._calculator.compute(normalized)
        if not is_auto_approvable(entry, settings, validation, computation, now):
            return None

        updated, record = transition(
            entry,
            EntryStatus.APPROVED,
            actor_id=None,
            method=ApprovalMethod.AUTOMATIC,
            now=now,
            comments="auto-approved",
        )
        saved = self._commit(entry, updated, record)
        logger.info("Entry %s auto-approved (tenant %s)", entry_id, tenant_id)
        return saved

    def auto_approve_pending(
        self,
        *,
        tenant_id: str,
        now: Optional[datetime] = None,
        limit: int = DEFAULT_PENDING_LIMIT,
    ) -> BulkApprovalResult:
        """One sweep over the tenant's pending entries; scheduling is up to the caller."""

        now = now or now_local()
        outcomes = []
        for entry in self._entries.list_pending(tenant_id=tenant_id, limit=limit):
            try:
                approved = self.auto_approve(entry_id=entry.entry_id, tenant_id=tenant_id, now=now)
            except DomainError as e:
                logger.warning("Auto-approval of %s failed: %s", entry.entry_id, e)
                outcomes.append(ApprovalOutcome(entry_id=entry.entry_id, ok=False, error=str(e), error_code=e.code))
                continue
            if approved is not None:
                outcomes.append(ApprovalOutcome(entry_id=entry.entry_id, ok=True))
        return BulkApprovalResult(outcomes=tuple(outcomes))
