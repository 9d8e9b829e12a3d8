from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, Iterator, Optional, Sequence

from ..audit.model import AuditLogEntry, build_audit_entry
from ..audit.repository import AuditLogRepository
from ..common.datetime_utils import now_local
from ..common.validators import clean_optional
from ..compliance.integrity import IntegrityReport, rebuild_integrity_chain, seal_entry, verify_integrity_chain
from ..compliance.model import ValidationResult
from ..compliance.validator import ConsistencyValidator
from ..core.enums import AuditAction, PunchKind
from ..core.exceptions import ConcurrentModification, EntryNotFound, ValidationError
from ..hours.calculator.base import HourCalculator
from ..hours.calculator.standard_calculator import StandardHourCalculator
from ..hours.service import recompute_total_hours
from ..schedules.repository import ScheduleRepository
from .model import NormalizedEntry, PunchAction
from .normalizer import EntryNormalizer, select_open_entry
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)


class UserLockRegistry:
    """One lock per key, created on demand and dropped when idle.

    Serializes check-in/check-out of the same user inside a single process.
    Different keys never block each other. Across processes the storage
    guards (unique open entry, compare-and-set close) take over.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: dict[Hashable, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            slot = self._locks.setdefault(key, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[key]


@dataclass(frozen=True)
class PunchResult:
    entry: NormalizedEntry
    validation: ValidationResult


@dataclass(frozen=True)
class RebuildResult:
    fixed: int
    checked: int


class TimeEntryService:
    def __init__(
        self,
        entries: TimeEntryRepository,
        schedules: Optional[ScheduleRepository] = None,
        *,
        normalizer: Optional[EntryNormalizer] = None,
        validator: Optional[ConsistencyValidator] = None,
        calculator: Optional[HourCalculator] = None,
        locks: Optional[UserLockRegistry] = None,
        audit_log: Optional[AuditLogRepository] = None,
    ):
        self._entries = entries
        self._schedules = schedules
        self._normalizer = normalizer or EntryNormalizer()
        self._validator = validator or ConsistencyValidator()
        self._calculator = calculator or StandardHourCalculator()
        self._locks = locks or UserLockRegistry()
        self._audit_log = audit_log

    def check_in(
        self,
        *,
        tenant_id: str,
        user_id: str,
        now: Optional[datetime] = None,
        notes: Optional[str] = None,
        location: Optional[str] = None,
        is_manual_entry: bool = False,
    ) -> PunchResult:
        now = now or now_local()
        action = PunchAction(
            kind=PunchKind.CHECK_IN,
            tenant_id=tenant_id,
            user_id=user_id,
            notes=clean_optional(notes),
            location=clean_optional(location),
            is_manual_entry=is_manual_entry,
        )

        with self._locks.hold(("user", tenant_id, user_id)):
            open_entry = select_open_entry(self._entries.find_open_entries(user_id=user_id, tenant_id=tenant_id))
            normalized = self._normalizer.normalize(action, open_entry, now)

            # NSR sequence is per tenant.
            with self._locks.hold(("tenant", tenant_id)):
                sealed = seal_entry(normalized.entry, self._entries.last_record(tenant_id=tenant_id))
                audit = build_audit_entry(
                    action=AuditAction.CREATE, after=sealed, performed_by=user_id, performed_at=now
                )
                saved = self._entries.save(sealed, audit=audit)

        logger.info("Check-in %s for user %s (tenant %s, nsr %s)", saved.entry_id, user_id, tenant_id, saved.nsr)
        normalized = NormalizedEntry(entry=saved)
        return PunchResult(entry=normalized, validation=self._validator.validate(normalized))

    def check_out(
        self,
        *,
        tenant_id: str,
        user_id: str,
        now: Optional[datetime] = None,
        break_start: Optional[datetime] = None,
        break_end: Optional[datetime] = None,
        notes: Optional[str] = None,
        location: Optional[str] = None,
    ) -> PunchResult:
        now = now or now_local()
        action = PunchAction(
            kind=PunchKind.CHECK_OUT,
            tenant_id=tenant_id,
            user_id=user_id,
            break_start=break_start,
            break_end=break_end,
            notes=clean_optional(notes),
            location=clean_optional(location),
        )

        with self._locks.hold(("user", tenant_id, user_id)):
            open_entry = select_open_entry(self._entries.find_open_entries(user_id=user_id, tenant_id=tenant_id))
            normalized = self._normalizer.normalize(action, open_entry, now)

            threshold = None
            if self._schedules is not None and normalized.check_in is not None:
                schedule = self._schedules.get_active_schedule(
                    user_id=user_id, tenant_id=tenant_id, on_date=normalized.check_in.date()
                )
                threshold = schedule.expected_minutes_on(normalized.check_in.date()) if schedule else None

            entry = recompute_total_hours(normalized, self._calculator, daily_threshold_minutes=threshold)
            audit = build_audit_entry(
                action=AuditAction.UPDATE, before=open_entry, after=entry, performed_by=user_id, performed_at=now
            )
            if not self._entries.close_entry(entry, audit=audit):
                raise ConcurrentModification("Entry was closed by another request; retry")

        logger.info("Check-out %s for user %s (tenant %s, %s h)", entry.entry_id, user_id, tenant_id, entry.total_hours)
        normalized = NormalizedEntry(
            entry=entry,
            break_start=normalized.break_start,
            break_end=normalized.break_end,
            break_inferred=normalized.break_inferred,
        )
        return PunchResult(entry=normalized, validation=self._validator.validate(normalized))

    def verify_integrity(self, *, tenant_id: str) -> IntegrityReport:
        report = verify_integrity_chain(self._entries.list_for_integrity(tenant_id=tenant_id))
        if not report.is_valid:
            logger.warning("Integrity chain broken for tenant %s: %d error(s)", tenant_id, len(report.errors))
        return report

    def rebuild_integrity(self, *, tenant_id: str, actor_id: str, now: Optional[datetime] = None) -> RebuildResult:
        """Renumber and re-hash the tenant's records in creation order.

        Every repaired record gets a system-generated UPDATE audit row naming
        the actor who ran the rebuild.
        """

        now = now or now_local()
        with self._locks.hold(("tenant", tenant_id)):
            records = self._entries.list_for_rebuild(tenant_id=tenant_id)
            by_id = {r.entry_id: r for r in records}
            changed = [e.with_changes(updated_at=now) for e in rebuild_integrity_chain(records)]
            audits = [
                build_audit_entry(
                    action=AuditAction.UPDATE,
                    before=by_id[e.entry_id],
                    after=e,
                    performed_by=actor_id,
                    performed_at=now,
                    reason="integrity chain rebuilt",
                    is_system_generated=True,
                )
                for e in changed
            ]
            self._entries.reseal(changed, audits=audits)

        logger.warning("Integrity chain of tenant %s rebuilt by %s: %d record(s) fixed", tenant_id, actor_id, len(changed))
        return RebuildResult(fixed=len(changed), checked=len(records))

    def audit_trail(self, *, entry_id: str, tenant_id: str) -> Sequence[AuditLogEntry]:
        if self._audit_log is None:
            raise ValidationError("Audit trail is not configured")
        if self._entries.get_by_id(entry_id=entry_id, tenant_id=tenant_id) is None:
            raise EntryNotFound(f"Entry {entry_id} not found")
        return self._audit_log.list_for_entry(entry_id=entry_id, tenant_id=tenant_id)
