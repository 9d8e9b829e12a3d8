class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "authorization_error"


class NoActiveEntry(ValidationError):
    """Check-out requested but the user has no open entry."""

    code = "no_active_entry"


class DuplicateOpenEntry(ValidationError):
    """Check-in requested while an open entry already exists."""

    code = "duplicate_open_entry"


class InvalidSequence(ValidationError):
    """A timestamp sequence is impossible (e.g. check-out without check-in)."""

    code = "invalid_sequence"


class MissingReason(ValidationError):
    code = "missing_reason"


class NotPending(ValidationError):
    """Approve/reject attempted on an entry that already reached a terminal status."""

    code = "not_pending"


class EntryNotFound(ValidationError):
    code = "entry_not_found"


class TenantMismatch(ValidationError):
    """Data from another tenant reached a tenant-scoped operation."""

    code = "tenant_mismatch"


class ConcurrentModification(ValidationError):
    """The open entry changed between read and close."""

    code = "concurrent_modification"


class Unauthorized(AuthorizationError):
    code = "unauthorized"


class SettingsMissing(AuthorizationError):
    """No approval settings for the tenant; the gate denies by default."""

    code = "settings_missing"
