from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..approvals.model import ApprovalHistory
from ..audit.model import AuditLogEntry
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import EntryStatus
from .model import TimeEntry


class TimeEntryRepository(Protocol):
    def find_open_entries(self, *, user_id: str, tenant_id: str) -> Sequence[TimeEntry]:
        """Entries with check-in set and check-out unset, any order."""

        raise NotImplementedError

    def find_entries_in_range(self, *, user_id: str, tenant_id: str, start: date, end: date) -> Sequence[TimeEntry]:
        """Entries whose check-in falls within [start, end], inclusive."""

        raise NotImplementedError

    def get_by_id(self, *, entry_id: str, tenant_id: str) -> Optional[TimeEntry]:
        raise NotImplementedError

    def save(self, entry: TimeEntry, *, audit: Optional[AuditLogEntry] = None) -> TimeEntry:
        """Insert a new entry together with its audit row.

        Raises DuplicateOpenEntry when the user already has an open entry and
        ConcurrentModification when the record number was taken meanwhile.
        """

        raise NotImplementedError

    def close_entry(self, entry: TimeEntry, *, audit: Optional[AuditLogEntry] = None) -> bool:
        """Compare-and-set close: persist the check-out only if the stored row is still open.

        Returns False when another writer closed the entry first.
        """

        raise NotImplementedError

    def transition_status(
        self,
        entry: TimeEntry,
        *,
        expected: EntryStatus,
        history: ApprovalHistory,
        audit: Optional[AuditLogEntry] = None,
    ) -> TimeEntry:
        """Compare-and-set status change plus its history row, in one transaction.

        Raises NotPending when the stored status is no longer `expected`.
        """

        raise NotImplementedError

    def list_pending(self, *, tenant_id: str, limit: int = DEFAULT_PENDING_LIMIT) -> Sequence[TimeEntry]:
        raise NotImplementedError

    def last_record(self, *, tenant_id: str) -> Optional[TimeEntry]:
        """Entry with the highest sequential record number for the tenant."""

        raise NotImplementedError

    def list_for_integrity(self, *, tenant_id: str) -> Sequence[TimeEntry]:
        """All entries of a tenant ordered by sequential record number."""

        raise NotImplementedError

    def list_for_rebuild(self, *, tenant_id: str) -> Sequence[TimeEntry]:
        """All entries of a tenant, sealed or not, ordered by creation time."""

        raise NotImplementedError

    def reseal(self, entries: Sequence[TimeEntry], *, audits: Sequence[AuditLogEntry] = ()) -> None:
        """Overwrite NSR and hashes of `entries` in one transaction."""

        raise NotImplementedError
