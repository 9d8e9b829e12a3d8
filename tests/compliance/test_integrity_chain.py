from __future__ import annotations

from datetime import datetime

from timecard_compliance.compliance.integrity import (
    generate_record_hash,
    rebuild_integrity_chain,
    seal_entry,
    verify_integrity_chain,
)


def _chain(make_entry, count=3):
    records = []
    previous = None
    for hour in range(8, 8 + count):
        sealed = seal_entry(make_entry(datetime(2024, 3, 4, hour, 0)), previous)
        records.append(sealed)
        previous = sealed
    return records


def test_seal_assigns_sequence_and_links_hashes(make_entry):
    first, second, third = _chain(make_entry)

    assert [first.nsr, second.nsr, third.nsr] == [1, 2, 3]
    assert first.previous_record_hash is None
    assert second.previous_record_hash == first.record_hash
    assert third.previous_record_hash == second.record_hash


def test_hash_is_deterministic(make_entry):
    entry = make_entry(datetime(2024, 3, 4, 8, 0))

    assert generate_record_hash(entry, 1, None) == generate_record_hash(entry, 1, None)
    assert generate_record_hash(entry, 1, None) != generate_record_hash(entry, 2, None)


def test_intact_chain_verifies(make_entry):
    report = verify_integrity_chain(_chain(make_entry))

    assert report.is_valid
    assert report.errors == ()
    assert report.checked == 3


def test_check_out_does_not_break_the_chain(make_entry):
    records = _chain(make_entry)
    records[1] = records[1].with_changes(check_out=datetime(2024, 3, 4, 17, 0))

    assert verify_integrity_chain(records).is_valid


def test_edited_check_in_is_detected(make_entry):
    records = _chain(make_entry)
    records[0] = records[0].with_changes(check_in=datetime(2024, 3, 4, 6, 0))

    report = verify_integrity_chain(records)

    assert not report.is_valid
    assert any("NSR 1" in e for e in report.errors)


def test_removed_record_is_detected(make_entry):
    first, _, third = _chain(make_entry)

    report = verify_integrity_chain([first, third])

    assert not report.is_valid
    assert any("expected sequence number 2" in e for e in report.errors)


def test_rebuild_leaves_intact_chain_alone(make_entry):
    assert rebuild_integrity_chain(_chain(make_entry)) == []


def test_rebuild_closes_gap_of_removed_record(make_entry):
    first, _, third = _chain(make_entry)

    (fixed,) = rebuild_integrity_chain([third, first])

    assert fixed.entry_id == third.entry_id
    assert fixed.nsr == 2
    assert verify_integrity_chain([first, fixed]).is_valid


def test_rebuild_orders_by_creation_time(make_entry):
    first, second = _chain(make_entry, count=2)
    unsealed = make_entry(datetime(2024, 3, 4, 8, 30), datetime(2024, 3, 4, 12, 0))

    fixed = rebuild_integrity_chain([second, unsealed, first])

    assert [(e.entry_id, e.nsr) for e in fixed] == [(unsealed.entry_id, 2), (second.entry_id, 3)]
    assert verify_integrity_chain([first, *fixed]).is_valid
