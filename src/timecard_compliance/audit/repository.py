from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuditLogEntry


class AuditLogRepository(Protocol):
    """Read side of the audit trail.

    Rows are written by the entry and approval repositories in the same
    transaction as the change they describe.
    """

    def list_for_entry(self, *, entry_id: str, tenant_id: str) -> Sequence[AuditLogEntry]:
        """Rows of one entry, oldest first."""

        raise NotImplementedError
