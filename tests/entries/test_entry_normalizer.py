from __future__ import annotations

from datetime import datetime

import pytest

from timecard_compliance.core.enums import EntryStatus, PunchKind
from timecard_compliance.core.exceptions import DuplicateOpenEntry, InvalidSequence, NoActiveEntry, TenantMismatch
from timecard_compliance.entries.model import PunchAction, TimeEntry
from timecard_compliance.entries.normalizer import EntryNormalizer, select_open_entry


def _normalizer():
    return EntryNormalizer(id_factory=lambda: "new-entry")


def test_check_in_creates_open_pending_entry():
    action = PunchAction(kind=PunchKind.CHECK_IN, tenant_id="t1", user_id="u1", location="HQ")
    result = _normalizer().normalize(action, None, datetime(2024, 3, 4, 8, 0))

    assert result.entry.entry_id == "new-entry"
    assert result.check_in == datetime(2024, 3, 4, 8, 0)
    assert result.check_out is None
    assert result.status == EntryStatus.PENDING
    assert result.entry.location == "HQ"
    assert not result.break_inferred


def test_check_in_with_open_entry_is_rejected(make_entry):
    open_entry = make_entry(datetime(2024, 3, 4, 8, 0))
    action = PunchAction(kind=PunchKind.CHECK_IN, tenant_id="t1", user_id="u1")

    with pytest.raises(DuplicateOpenEntry):
        _normalizer().normalize(action, open_entry, datetime(2024, 3, 4, 9, 0))


def test_check_out_without_open_entry_raises():
    action = PunchAction(kind=PunchKind.CHECK_OUT, tenant_id="t1", user_id="u1")

    with pytest.raises(NoActiveEntry):
        _normalizer().normalize(action, None, datetime(2024, 3, 4, 18, 0))


def test_check_out_of_long_shift_infers_centered_break(make_entry):
    open_entry = make_entry(datetime(2024, 3, 4, 8, 0))
    action = PunchAction(kind=PunchKind.CHECK_OUT, tenant_id="t1", user_id="u1")

    result = _normalizer().normalize(action, open_entry, datetime(2024, 3, 4, 18, 0))

    assert result.check_out == datetime(2024, 3, 4, 18, 0)
    assert result.break_start == datetime(2024, 3, 4, 12, 30)
    assert result.break_end == datetime(2024, 3, 4, 13, 30)
    assert result.break_inferred
    # The stored record never carries the inferred break.
    assert result.entry.break_start is None
    assert result.entry.break_end is None


def test_short_shift_gets_no_break(make_entry):
    open_entry = make_entry(datetime(2024, 3, 4, 9, 0))
    action = PunchAction(kind=PunchKind.CHECK_OUT, tenant_id="t1", user_id="u1")

    result = _normalizer().normalize(action, open_entry, datetime(2024, 3, 4, 14, 0))

    assert result.break_start is None
    assert not result.break_inferred


def test_shift_exactly_at_threshold_gets_no_break(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 14, 0))
    assert _normalizer().infer_break(entry) is None


def test_explicit_break_is_kept(make_entry):
    open_entry = make_entry(datetime(2024, 3, 4, 8, 0))
    action = PunchAction(
        kind=PunchKind.CHECK_OUT,
        tenant_id="t1",
        user_id="u1",
        break_start=datetime(2024, 3, 4, 12, 0),
        break_end=datetime(2024, 3, 4, 12, 45),
    )

    result = _normalizer().normalize(action, open_entry, datetime(2024, 3, 4, 18, 0))

    assert result.entry.break_start == datetime(2024, 3, 4, 12, 0)
    assert result.break_end == datetime(2024, 3, 4, 12, 45)
    assert not result.break_inferred


def test_overnight_shift_break_lands_past_midnight(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 22, 0), datetime(2024, 3, 4, 6, 0))

    start, end = _normalizer().infer_break(entry)

    assert start == datetime(2024, 3, 5, 1, 30)
    assert end == datetime(2024, 3, 5, 2, 30)


def test_normalize_existing_is_idempotent(make_entry):
    normalizer = _normalizer()
    entry = make_entry(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 18, 0))

    once = normalizer.normalize_existing(entry)
    twice = normalizer.normalize_existing(once)
    again = normalizer.normalize_existing(entry)

    assert twice == once
    assert again == once


def test_open_entry_of_other_tenant_is_refused(make_entry):
    foreign = make_entry(datetime(2024, 3, 4, 8, 0), tenant_id="t2")
    action = PunchAction(kind=PunchKind.CHECK_OUT, tenant_id="t1", user_id="u1")

    with pytest.raises(TenantMismatch):
        _normalizer().normalize(action, foreign, datetime(2024, 3, 4, 18, 0))


def test_select_open_entry_picks_most_recent(make_entry):
    older = make_entry(datetime(2024, 3, 4, 8, 0))
    newer = make_entry(datetime(2024, 3, 4, 9, 0))
    closed = make_entry(datetime(2024, 3, 4, 10, 0), datetime(2024, 3, 4, 11, 0))

    assert select_open_entry([newer, closed, older]) is newer
    assert select_open_entry([closed]) is None


def test_time_entry_rejects_check_out_without_check_in():
    with pytest.raises(InvalidSequence):
        TimeEntry(entry_id="e1", tenant_id="t1", user_id="u1", check_in=None, check_out=datetime(2024, 3, 4, 9, 0))
