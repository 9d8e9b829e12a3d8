from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import days_in_period, format_hhmm, iter_dates
from ..compliance.model import Issue, ValidationResult
from ..compliance.validator import ConsistencyValidator
from ..core.enums import EntryStatus, ReportKind, Severity
from ..core.exceptions import DomainError, ValidationError
from ..entries.model import NormalizedEntry, TimeEntry
from ..entries.normalizer import EntryNormalizer
from ..entries.repository import TimeEntryRepository
from ..hours.calculator.base import HourCalculator
from ..hours.calculator.standard_calculator import StandardHourCalculator, day_overtime_minutes, minutes_to_hours
from ..hours.model import HourComputation
from ..schedules.model import WorkSchedule
from ..schedules.repository import ScheduleRepository
from .model import (
    AttendanceRow,
    ComplianceRow,
    ComplianceSummary,
    OvertimeRow,
    OvertimeSummary,
    Report,
)

logger = logging.getLogger(__name__)

WEEKDAY_LABELS = (
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
    "Domingo",
)

STATUS_LABELS = {
    EntryStatus.PENDING: "Pendente",
    EntryStatus.APPROVED: "Aprovado",
    EntryStatus.REJECTED: "Rejeitado",
}
IN_PROGRESS_LABEL = "Em andamento"
INCONSISTENT_LABEL = "Inconsistente"
NO_SCHEDULE_LABEL = "Sem escala"


@dataclass(frozen=True)
class ProcessedEntry:
    """One entry after normalize -> validate -> compute."""

    entry: TimeEntry
    normalized: Optional[NormalizedEntry]
    validation: ValidationResult
    computation: HourComputation


@dataclass(frozen=True)
class ProcessedDay:
    day: date
    entries: tuple[ProcessedEntry, ...]
    schedule: Optional[WorkSchedule]
    expected_minutes: int

    @property
    def total_hours(self) -> Decimal:
        return sum((p.computation.total_hours for p in self.entries), Decimal("0.00"))

    @property
    def overtime_minutes(self) -> int:
        return day_overtime_minutes([p.computation for p in self.entries], self.expected_minutes)


class ReportAggregator:
    """Walks a date range and folds entries into attendance/overtime/compliance reports.

    Per-entry problems become row observations; only repository failures
    escape. With `timeout_seconds` the walk stops early and the report is
    marked `truncated`.
    """

    def __init__(
        self,
        entries: TimeEntryRepository,
        schedules: Optional[ScheduleRepository] = None,
        *,
        normalizer: Optional[EntryNormalizer] = None,
        validator: Optional[ConsistencyValidator] = None,
        calculator: Optional[HourCalculator] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries = entries
        self._schedules = schedules
        self._normalizer = normalizer or EntryNormalizer()
        self._validator = validator or ConsistencyValidator()
        self._calculator = calculator or StandardHourCalculator()
        self._clock = clock

    def build_report(
        self,
        *,
        user_id: str,
        tenant_id: str,
        start: date,
        end: date,
        kind: ReportKind,
        now: Optional[datetime] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Report:
        kind = ReportKind(kind)
        if end < start:
            raise ValidationError("end must be >= start")

        days, warnings, truncated, last_day = self._walk(
            user_id=user_id,
            tenant_id=tenant_id,
            start=start,
            end=end,
            now=now,
            timeout_seconds=timeout_seconds,
        )

        period = self._calculator.summarize_period(
            {d.day: [p.computation for p in d.entries] for d in days},
            expected_daily_minutes={d.day: d.expected_minutes for d in days},
        )

        report = Report(
            kind=kind,
            user_id=user_id,
            tenant_id=tenant_id,
            start=start,
            end=end,
            period=period,
            warnings=tuple(warnings),
            truncated=truncated,
            last_processed_date=last_day,
        )
        if kind == ReportKind.ATTENDANCE:
            return self._attendance(report, days)
        if kind == ReportKind.OVERTIME:
            return self._overtime(report, days)
        return self._compliance(report, days)

    def _walk(self, *, user_id, tenant_id, start, end, now, timeout_seconds):
        started = self._clock()
        rows = self._entries.find_entries_in_range(user_id=user_id, tenant_id=tenant_id, start=start, end=end)

        warnings: list[str] = []
        by_day: dict[date, list[TimeEntry]] = defaultdict(list)
        for entry in rows:
            if entry.tenant_id != tenant_id or entry.user_id != user_id:
                logger.warning("Skipping entry %s: belongs to another tenant or user", entry.entry_id)
                warnings.append(f"entry {entry.entry_id} skipped: outside tenant scope")
                continue
            day = entry.work_date or (entry.created_at.date() if entry.created_at else None)
            if day is None:
                warnings.append(f"entry {entry.entry_id} skipped: no entry time")
                continue
            by_day[day].append(entry)

        days: list[ProcessedDay] = []
        last_day: Optional[date] = None
        truncated = False
        for day in iter_dates(start, end):
            if timeout_seconds is not None and self._clock() - started > timeout_seconds:
                truncated = True
                logger.warning("Report for user %s truncated after %s (timeout %ss)", user_id, last_day, timeout_seconds)
                warnings.append("report truncated: time budget exceeded")
                break

            last_day = day
            day_entries = by_day.get(day)
            if not day_entries:
                continue

            day_entries.sort(key=lambda e: e.created_at or e.check_in or datetime.min)
            schedule = self._schedule_for(user_id, tenant_id, day)
            expected = schedule.expected_minutes_on(day) if schedule else self._calculator.daily_threshold_minutes
            processed = tuple(self._process(e, now=now, threshold=expected) for e in day_entries)
            days.append(ProcessedDay(day=day, entries=processed, schedule=schedule, expected_minutes=expected))

        return days, warnings, truncated, last_day

    def _schedule_for(self, user_id: str, tenant_id: str, day: date) -> Optional[WorkSchedule]:
        if self._schedules is None:
            return None
        schedule = self._schedules.get_active_schedule(user_id=user_id, tenant_id=tenant_id, on_date=day)
        if schedule is not None and schedule.tenant_id != tenant_id:
            logger.warning("Ignoring schedule of another tenant for user %s", user_id)
            return None
        return schedule

    def _process(self, entry: TimeEntry, *, now: Optional[datetime], threshold: Optional[int]) -> ProcessedEntry:
        try:
            normalized = self._normalizer.normalize_existing(entry)
            validation = self._validator.validate(normalized)
            computation = self._calculator.compute(normalized, now=now, daily_threshold_minutes=threshold)
        except DomainError as e:
            logger.warning("Entry %s could not be normalized: %s", entry.entry_id, e)
            issue = Issue("normalization_failed", Severity.HIGH, str(e))
            return ProcessedEntry(
                entry=entry,
                normalized=None,
                validation=ValidationResult(issues=(issue,)),
                computation=HourComputation(0, 0, minutes_to_hours(0), 0, in_progress=entry.is_open),
            )
        return ProcessedEntry(entry=entry, normalized=normalized, validation=validation, computation=computation)

    def _attendance(self, report: Report, days: Sequence[ProcessedDay]) -> Report:
        rows = [self._attendance_row(d) for d in days]
        return replace(report, rows=tuple(rows))

    def _attendance_row(self, day: ProcessedDay) -> AttendanceRow:
        first = day.entries[0]
        view = first.normalized
        if len(day.entries) == 1 and view is not None:
            marks = (view.check_in, view.break_start, view.break_end, view.check_out)
        else:
            second = day.entries[1].entry if len(day.entries) > 1 else None
            marks = (
                first.entry.check_in,
                first.entry.check_out,
                second.check_in if second else None,
                second.check_out if second else None,
            )

        notes = [p.validation.observations for p in day.entries if p.validation.issues]
        hidden = len(day.entries) - 2
        if hidden > 0:
            # Punch columns hold two entries; the hours above still count all of them.
            notes.append(f"{hidden} more entries not shown")
        observations = "; ".join(notes)
        return AttendanceRow(
            work_date=day.day.strftime("%Y-%m-%d"),
            weekday=WEEKDAY_LABELS[day.day.weekday()],
            first_entry=format_hhmm(marks[0]),
            first_exit=format_hhmm(marks[1]),
            second_entry=format_hhmm(marks[2]),
            second_exit=format_hhmm(marks[3]),
            total_hours=day.total_hours,
            status=_status_label(day),
            observations=observations,
            overtime_hours=minutes_to_hours(day.overtime_minutes),
            schedule_type=day.schedule.label if day.schedule else NO_SCHEDULE_LABEL,
            is_consistent=all(p.validation.is_consistent for p in day.entries),
            break_inferred=any(p.normalized is not None and p.normalized.break_inferred for p in day.entries),
        )

    def _overtime(self, report: Report, days: Sequence[ProcessedDay]) -> Report:
        rows = [
            OvertimeRow(
                work_date=d.day.strftime("%Y-%m-%d"),
                weekday=WEEKDAY_LABELS[d.day.weekday()],
                total_hours=d.total_hours,
                overtime_minutes=d.overtime_minutes,
                overtime_hours=minutes_to_hours(d.overtime_minutes),
            )
            for d in days
        ]

        total_minutes = sum(r.overtime_minutes for r in rows)
        total_hours = minutes_to_hours(total_minutes)
        calendar_days = days_in_period(report.start, report.end)
        average = (total_hours / Decimal(calendar_days)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        summary = OvertimeSummary(
            total_overtime_hours=total_hours,
            average_overtime_per_day=average,
            overtime_days=sum(1 for r in rows if r.overtime_minutes > 0),
        )
        return replace(report, rows=tuple(rows), overtime=summary)

    def _compliance(self, report: Report, days: Sequence[ProcessedDay]) -> Report:
        rows = []
        by_severity = {s.value: 0 for s in Severity}
        consistent = 0
        for d in days:
            for p in d.entries:
                if p.validation.is_consistent:
                    consistent += 1
                for issue in p.validation.issues:
                    by_severity[issue.severity.value] += 1
                rows.append(
                    ComplianceRow(
                        work_date=d.day.strftime("%Y-%m-%d"),
                        entry_id=p.entry.entry_id,
                        is_consistent=p.validation.is_consistent,
                        issues=tuple(
                            {"code": i.code, "severity": i.severity.value, "message": i.message}
                            for i in p.validation.issues
                        ),
                    )
                )

        total = len(rows)
        rate = Decimal("100.00")
        if total:
            rate = (Decimal(consistent) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        summary = ComplianceSummary(
            total_entries=total,
            consistent_entries=consistent,
            compliance_rate=rate,
            issues_by_severity=by_severity,
            high_severity_count=by_severity[Severity.HIGH.value],
        )
        return replace(report, rows=tuple(rows), compliance=summary)


def _status_label(day: ProcessedDay) -> str:
    if any(p.computation.in_progress for p in day.entries):
        return IN_PROGRESS_LABEL
    if not all(p.validation.is_consistent for p in day.entries):
        return INCONSISTENT_LABEL
    statuses = {p.entry.status for p in day.entries}
    for status in (EntryStatus.REJECTED, EntryStatus.PENDING, EntryStatus.APPROVED):
        if status in statuses:
            return STATUS_LABELS[status]
    return STATUS_LABELS[EntryStatus.PENDING]

