from __future__ import annotations

from typing import Optional

from ...common.datetime_utils import minutes_between, shift_end, shift_minutes
from ...core.constants import LONG_SHIFT_THRESHOLD_MINUTES, MAX_BREAK_MINUTES
from ...core.enums import Severity
from ...entries.model import NormalizedEntry
from ..model import Issue
from .base import ComplianceRule


class BreakWindowRule(ComplianceRule):
    """Break must sit inside the shift and end after it starts."""

    code = "invalid_break"

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        start, end = entry.break_start, entry.break_end
        if start is None and end is None:
            return None

        invalid = Issue(self.code, Severity.HIGH, "invalid break window")
        if start is None:
            return invalid
        if end is None:
            # An unfinished break is only legal while the shift is still open.
            return invalid if entry.check_out is not None else None

        if start >= end:
            return invalid
        if entry.check_in is not None and start < entry.check_in:
            return invalid
        if entry.check_in is not None and entry.check_out is not None:
            if end > shift_end(entry.check_in, entry.check_out):
                return invalid
        return None


class MaxBreakRule(ComplianceRule):
    code = "excessive_break"

    def __init__(self, max_minutes: int = MAX_BREAK_MINUTES):
        self._max_minutes = int(max_minutes)

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if not entry.has_break:
            return None
        if minutes_between(entry.break_start, entry.break_end) > self._max_minutes:
            return Issue(self.code, Severity.HIGH, "excessive break")
        return None


class MandatoryBreakRule(ComplianceRule):
    code = "missing_break"

    def __init__(self, threshold_minutes: int = LONG_SHIFT_THRESHOLD_MINUTES):
        self._threshold = int(threshold_minutes)

    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        if entry.check_in is None or entry.check_out is None or entry.has_break:
            return None
        if shift_minutes(entry.check_in, entry.check_out) > self._threshold:
            return Issue(self.code, Severity.WARNING, "long shift without mandatory break")
        return None
