from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

from ..common.validators import require_non_empty
from ..core.enums import ApprovalCategory, ApprovalMethod, ApprovalType, EntryStatus
from ..core.exceptions import MissingReason, ValidationError


@dataclass(frozen=True)
class ApprovalSettings:
    """Per-tenant rules for who approves and what auto-approves."""

    tenant_id: str
    approval_type: ApprovalType = ApprovalType.MANUAL
    auto_approve_complete: bool = False
    auto_approve_after_hours: int = 24
    require_approval_for: FrozenSet[ApprovalCategory] = field(default_factory=frozenset)
    default_approvers: FrozenSet[str] = field(default_factory=frozenset)
    approval_group_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_non_empty(self.tenant_id, "tenant_id")
        if not isinstance(self.approval_type, ApprovalType):
            object.__setattr__(self, "approval_type", ApprovalType(self.approval_type))
        object.__setattr__(
            self, "require_approval_for", frozenset(ApprovalCategory(c) for c in self.require_approval_for)
        )
        object.__setattr__(self, "default_approvers", frozenset(str(a) for a in self.default_approvers))
        if int(self.auto_approve_after_hours) < 0:
            raise ValidationError("auto_approve_after_hours must not be negative")


@dataclass(frozen=True)
class ApprovalHistory:
    """Immutable audit row: one per approval or rejection."""

    history_id: str
    tenant_id: str
    timecard_entry_id: str
    approval_status: EntryStatus
    approved_by: Optional[str]
    approval_date: datetime
    approval_method: ApprovalMethod
    rejection_reason: Optional[str] = None
    comments: Optional[str] = None

    def __post_init__(self) -> None:
        if self.approval_status not in (EntryStatus.APPROVED, EntryStatus.REJECTED):
            raise ValidationError("History rows record only approvals and rejections")
        has_reason = bool(self.rejection_reason and self.rejection_reason.strip())
        if self.approval_status == EntryStatus.REJECTED and not has_reason:
            raise MissingReason("Rejection reason is required")
        if self.approval_status == EntryStatus.APPROVED and has_reason:
            raise ValidationError("Only rejections carry a reason")
        if self.approval_method == ApprovalMethod.MANUAL and not self.approved_by:
            raise ValidationError("Manual decisions need an actor")


@dataclass(frozen=True)
class ApprovalOutcome:
    entry_id: str
    ok: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass(frozen=True)
class BulkApprovalResult:
    outcomes: tuple[ApprovalOutcome, ...]

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)
