from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ApprovalHistory, ApprovalSettings


class ApprovalSettingsRepository(Protocol):
    def get_approval_settings(self, *, tenant_id: str) -> Optional[ApprovalSettings]:
        raise NotImplementedError


class GroupMembershipRepository(Protocol):
    def get_group_members(self, *, group_id: str, tenant_id: str) -> Sequence[str]:
        raise NotImplementedError


class ApprovalHistoryRepository(Protocol):
    """Read side of the approval history.

    Rows are append-only and written by `TimeEntryRepository.transition_status`.
    """

    def list_for_entry(self, *, entry_id: str, tenant_id: str) -> Sequence[ApprovalHistory]:
        raise NotImplementedError
