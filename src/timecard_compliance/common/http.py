from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import jsonify, request

from ..core.exceptions import (
    AuthorizationError,
    ConcurrentModification,
    DomainError,
    DuplicateOpenEntry,
    EntryNotFound,
    NotPending,
    ValidationError,
)
from .validators import require_non_empty

logger = logging.getLogger(__name__)

_CONFLICTS = (ConcurrentModification, DuplicateOpenEntry, NotPending)


def caller_identity() -> tuple[str, str]:
    """(tenant_id, user_id) of the authenticated caller, taken from the request headers."""
    tenant_id = require_non_empty(request.headers.get("X-Tenant-Id"), "X-Tenant-Id")
    user_id = require_non_empty(request.headers.get("X-User-Id"), "X-User-Id")
    return tenant_id, user_id


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def parse_optional_datetime(value: Optional[str], field_name: str) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO datetime") from None


def error_status(e: DomainError) -> int:
    if isinstance(e, AuthorizationError):
        return 403
    if isinstance(e, EntryNotFound):
        return 404
    if isinstance(e, _CONFLICTS):
        return 409
    return 400


def error_response(e: DomainError):
    return jsonify({"success": False, "code": e.code, "message": str(e)}), error_status(e)


def server_error(message: str):
    logger.exception(message)
    return jsonify({"success": False, "code": "server_error", "message": message}), 500


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="minutes") if value else None


def entry_payload(entry) -> dict:
    """JSON view of a TimeEntry or NormalizedEntry (break columns come from the view)."""
    raw = getattr(entry, "entry", entry)
    total: Optional[Decimal] = raw.total_hours
    return {
        "id": raw.entry_id,
        "tenant_id": raw.tenant_id,
        "user_id": raw.user_id,
        "check_in": iso(raw.check_in),
        "check_out": iso(raw.check_out),
        "break_start": iso(entry.break_start),
        "break_end": iso(entry.break_end),
        "break_inferred": bool(getattr(entry, "break_inferred", False)),
        "total_hours": float(total) if total is not None else None,
        "status": raw.status.value,
        "is_manual_entry": raw.is_manual_entry,
        "notes": raw.notes,
        "location": raw.location,
        "approved_by": raw.approved_by,
        "nsr": raw.nsr,
    }
