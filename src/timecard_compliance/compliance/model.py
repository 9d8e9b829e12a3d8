from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Severity


@dataclass(frozen=True)
class Issue:
    """One rule violation found on an entry."""

    code: str
    severity: Severity
    message: str


@dataclass(frozen=True)
class ValidationResult:
    issues: tuple[Issue, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not any(i.severity == Severity.HIGH for i in self.issues)

    @property
    def observations(self) -> str:
        return "; ".join(i.message for i in self.issues)

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.issues if i.severity == severity)

    def has_code(self, code: str) -> bool:
        return any(i.code == code for i in self.issues)
