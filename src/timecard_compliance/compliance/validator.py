from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import LONG_SHIFT_THRESHOLD_MINUTES, MAX_BREAK_MINUTES, MAX_SHIFT_MINUTES, MIN_SHIFT_MINUTES
from ..entries.model import EntryLike, NormalizedEntry
from .model import ValidationResult
from .rules.base import ComplianceRule
from .rules.break_rules import BreakWindowRule, MandatoryBreakRule, MaxBreakRule
from .rules.shift_rules import (
    ExitBeforeEntryRule,
    InProgressRule,
    MaxShiftLengthRule,
    MinShiftLengthRule,
    MissingCheckInRule,
)


def default_rules(
    *,
    max_shift_minutes: int = MAX_SHIFT_MINUTES,
    min_shift_minutes: int = MIN_SHIFT_MINUTES,
    max_break_minutes: int = MAX_BREAK_MINUTES,
    mandatory_break_after_minutes: int = LONG_SHIFT_THRESHOLD_MINUTES,
) -> list[ComplianceRule]:
    return [
        MissingCheckInRule(),
        ExitBeforeEntryRule(),
        MaxShiftLengthRule(max_shift_minutes),
        MinShiftLengthRule(min_shift_minutes),
        BreakWindowRule(),
        MaxBreakRule(max_break_minutes),
        MandatoryBreakRule(mandatory_break_after_minutes),
        InProgressRule(),
    ]


class ConsistencyValidator:
    """Runs every compliance rule over one entry. Pure: no I/O, no mutation."""

    def __init__(self, rules: Optional[Sequence[ComplianceRule]] = None):
        self._rules = list(rules) if rules is not None else default_rules()

    def validate(self, entry: EntryLike) -> ValidationResult:
        if not isinstance(entry, NormalizedEntry):
            # Raw entries are checked on their recorded break only.
            entry = NormalizedEntry(entry=entry, break_start=entry.break_start, break_end=entry.break_end)

        issues = []
        for rule in self._rules:
            issue = rule.check(entry)
            if issue is not None:
                issues.append(issue)
        return ValidationResult(issues=tuple(issues))
