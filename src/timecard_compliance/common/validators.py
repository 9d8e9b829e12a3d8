from __future__ import annotations

from typing import Optional

from ..core.exceptions import TenantMismatch, ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_same_tenant(expected_tenant_id: str, actual_tenant_id: str) -> None:
    if expected_tenant_id != actual_tenant_id:
        raise TenantMismatch("Record does not belong to the current tenant")


def clean_optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None
