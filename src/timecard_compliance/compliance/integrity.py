"""Tamper-evidence for time entries.

Every entry receives a per-tenant sequential record number (NSR) when it is
created, plus a SHA-256 hash over its creation-time fields chained to the hash
of the previous record. Re-walking the chain detects edited, removed or
reordered rows.

Only fields that are fixed at creation are hashed; the check-out and the
approval status are expected to change afterwards.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..entries.model import TimeEntry


@dataclass(frozen=True)
class IntegrityReport:
    is_valid: bool
    errors: tuple[str, ...] = ()
    checked: int = 0


def generate_record_hash(entry: TimeEntry, nsr: int, previous_hash: Optional[str]) -> str:
    payload = {
        "id": entry.entry_id,
        "tenantId": entry.tenant_id,
        "userId": entry.user_id,
        "nsr": int(nsr),
        "checkIn": entry.check_in.isoformat() if entry.check_in else None,
        "location": entry.location,
        "isManualEntry": bool(entry.is_manual_entry),
        "previousHash": previous_hash,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def seal_entry(entry: TimeEntry, previous: Optional[TimeEntry]) -> TimeEntry:
    """Assign the next NSR and chain hash after `previous` (the tenant's last record)."""

    nsr = (previous.nsr or 0) + 1 if previous else 1
    previous_hash = previous.record_hash if previous else None
    record_hash = generate_record_hash(entry, nsr, previous_hash)
    return entry.with_changes(nsr=nsr, record_hash=record_hash, previous_record_hash=previous_hash)


def verify_integrity_chain(records: Sequence[TimeEntry]) -> IntegrityReport:
    errors: list[str] = []
    previous_hash: Optional[str] = None
    expected_nsr = 1

    for record in sorted(records, key=lambda r: r.nsr or 0):
        if record.nsr != expected_nsr:
            errors.append(f"NSR {record.nsr}: expected sequence number {expected_nsr}")
        if record.previous_record_hash != previous_hash:
            errors.append(f"NSR {record.nsr}: previous hash does not match the chain")

        expected_hash = generate_record_hash(record, record.nsr or 0, previous_hash)
        if record.record_hash != expected_hash:
            errors.append(f"NSR {record.nsr}: record hash was altered")

        previous_hash = record.record_hash
        expected_nsr = (record.nsr or 0) + 1

    return IntegrityReport(is_valid=not errors, errors=tuple(errors), checked=len(records))


def rebuild_integrity_chain(records: Sequence[TimeEntry]) -> list[TimeEntry]:
    """Renumber and re-hash a tenant's entries in creation order.

    Returns only the entries whose NSR or hashes changed, already re-sealed.
    """

    ordered = sorted(
        records,
        key=lambda r: (r.created_at or r.check_in or datetime.min, r.nsr if r.nsr is not None else 0),
    )
    changed: list[TimeEntry] = []
    previous: Optional[TimeEntry] = None
    for record in ordered:
        sealed = seal_entry(record, previous)
        if (sealed.nsr, sealed.record_hash, sealed.previous_record_hash) != (
            record.nsr,
            record.record_hash,
            record.previous_record_hash,
        ):
            changed.append(sealed)
        previous = sealed
    return changed
