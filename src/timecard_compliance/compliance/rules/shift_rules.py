from __future__ import annotations

from typing import Optional

from ...common.datetime_utils import shift_minutes
from ...core.constants import MAX_SHIFT_MINUTES, MIN_SHIFT_MINUTES
from ...core.enums import Severity
from ...entries.model import NormalizedEntry
from ..model import Issue
from .base import ComplianceRule


class MissingCheckInRule(ComplianceRule):
    code = "missing_check_in"

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is None:
            return Issue(self.code, Severity.HIGH, "no entry time")
        return None


class ExitBeforeEntryRule(ComplianceRule):
    """Same-day check-out at or before check-in. Never swapped silently."""

    code = "exit_before_entry"

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is None or entry.check_out is None:
            return None
        if entry.check_out <= entry.check_in and entry.check_out.date() == entry.check_in.date():
            return Issue(self.code, Severity.HIGH, "exit before entry")
        return None


class MaxShiftLengthRule(ComplianceRule):
    code = "excessive_shift"

    def __init__(self, max_minutes: int = MAX_SHIFT_MINUTES):
        self._max_minutes = int(max_minutes)

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is None or entry.check_out is None:
            return None
        if shift_minutes(entry.check_in, entry.check_out) > self._max_minutes:
            return Issue(self.code, Severity.HIGH, "excessively long shift")
        return None


class MinShiftLengthRule(ComplianceRule):
    code = "short_shift"

    def __init__(self, min_minutes: int = MIN_SHIFT_MINUTES):
        self._min_minutes = int(min_minutes)

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is None or entry.check_out is None:
            return None
        if shift_minutes(entry.check_in, entry.check_out) < self._min_minutes:
            return Issue(self.code, Severity.HIGH, "excessively short shift")
        return None


class InProgressRule(ComplianceRule):
    code = "in_progress"

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is not None and entry.check_out is None:
            return Issue(self.code, Severity.INFO, "entry in progress")
        return None
