"""
Tests for the clock-in / break / clock-out state machine (no database)
"""
from datetime import date, time
from decimal import Decimal
from itertools import product
from types import SimpleNamespace

import pytest

from app.models.attendance import AttendanceStatus
from app.services.attendance_state_machine import (
    MSG_ALREADY_CLOCKED_IN,
    MSG_BREAK_ALREADY_ENDED,
    MSG_BREAK_ALREADY_STARTED,
    MSG_CLOCK_IN_BEFORE_BREAK,
    MSG_CLOCK_IN_BEFORE_BREAK_END,
    MSG_NO_ACTIVE_BREAK,
    MSG_NO_ACTIVE_CLOCK_IN,
    AttendanceState,
    Capabilities,
    RecordPatch,
    UNSET,
    compute_worked_hours,
    derive_state,
    get_capabilities,
    plan_break_end,
    plan_break_start,
    plan_clock_in,
    plan_clock_out,
)

DAY = date(2026, 3, 2)


def make_record(**fields):
    values = dict(
        date=DAY,
        time_in=None,
        time_out=None,
        break_start=None,
        break_end=None,
        total_hours=None,
        overtime_hours=None,
        status="present",
        notes=None,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def apply(record, result):
    assert result.accepted, result.message
    if record is None:
        record = make_record()
    return result.patch.apply_to(record)


# --- state derivation ---


def test_derive_state():
    assert derive_state(None) is AttendanceState.NOT_CLOCKED_IN
    assert derive_state(make_record()) is AttendanceState.NOT_CLOCKED_IN
    assert derive_state(make_record(time_in=time(9))) is AttendanceState.CLOCKED_IN
    assert derive_state(make_record(time_in=time(9), break_start=time(12))) is AttendanceState.ON_BREAK
    assert derive_state(
        make_record(time_in=time(9), break_start=time(12), break_end=time(13))
    ) is AttendanceState.CLOCKED_IN
    assert derive_state(
        make_record(time_in=time(9), break_start=time(12), time_out=time(17))
    ) is AttendanceState.CLOCKED_OUT


def test_capabilities_per_state():
    assert get_capabilities(None) == Capabilities(can_clock_in=True)
    assert get_capabilities(make_record(time_in=time(9))) == Capabilities(can_clock_out=True, can_start_break=True)
    assert get_capabilities(
        make_record(time_in=time(9), break_start=time(12))
    ) == Capabilities(can_clock_out=True, can_end_break=True)
    assert get_capabilities(make_record(time_in=time(9), time_out=time(17))) == Capabilities(can_clock_in=True)


_FIELD_CHOICES = (None, time(12))


@pytest.mark.parametrize(
    "time_in,time_out,break_start,break_end",
    list(product(_FIELD_CHOICES, repeat=4)),
)
def test_state_is_closed_and_capabilities_idempotent(time_in, time_out, break_start, break_end):
    record = make_record(time_in=time_in, time_out=time_out, break_start=break_start, break_end=break_end)

    assert derive_state(record) in set(AttendanceState)
    assert get_capabilities(record) == get_capabilities(record)


# --- clock in ---


def test_clock_in_without_record_creates_present_record():
    # 08:55:00, no record today
    result = plan_clock_in(None, time(8, 55))

    assert result.accepted
    assert result.creates_record
    assert result.state is AttendanceState.CLOCKED_IN

    record = apply(None, result)
    assert record.time_in == time(8, 55)
    assert record.status == "present"
    caps = get_capabilities(record)
    assert caps.can_clock_out is True
    assert caps.can_clock_in is False


def test_clock_in_twice_is_rejected_and_record_unchanged():
    record = apply(None, plan_clock_in(None, time(8, 55)))
    before = dict(vars(record))

    result = plan_clock_in(record, time(9, 10))

    assert not result.accepted
    assert result.message == MSG_ALREADY_CLOCKED_IN
    assert result.patch is None
    assert vars(record) == before


def test_clock_in_while_on_break_is_rejected():
    record = make_record(time_in=time(8), break_start=time(12))

    result = plan_clock_in(record, time(12, 30))

    assert not result.accepted
    assert result.state is AttendanceState.ON_BREAK


def test_reopen_after_clock_out_resets_the_day():
    record = make_record(
        time_in=time(8),
        time_out=time(12),
        break_start=time(10),
        break_end=time(10, 15),
        total_hours=Decimal("3.75"),
        overtime_hours=Decimal("0.00"),
        status="late",
        notes="morning shift",
    )

    result = plan_clock_in(record, time(13))
    assert result.accepted
    assert not result.creates_record
    apply(record, result)

    assert record.time_in == time(13)
    assert record.time_out is None
    assert record.break_start is None
    assert record.break_end is None
    assert record.total_hours is None
    assert record.overtime_hours is None
    assert record.status == "present"
    assert record.notes == "morning shift"
    assert derive_state(record) is AttendanceState.CLOCKED_IN


def test_supplied_notes_overwrite():
    record = make_record(time_in=time(8), notes="old")

    apply(record, plan_break_start(record, time(12), notes="lunch"))

    assert record.notes == "lunch"


# --- clock out ---


def test_clock_out_computes_hours_minus_break():
    # 08:00 -> 17:30 with 12:00-13:00 break
    record = make_record(time_in=time(8), break_start=time(12), break_end=time(13))

    result = plan_clock_out(record, time(17, 30))
    apply(record, result)

    assert result.state is AttendanceState.CLOCKED_OUT
    assert record.time_out == time(17, 30)
    assert record.total_hours == Decimal("8.50")
    assert record.overtime_hours == Decimal("0.50")
    assert record.status == "present"


def test_clock_out_after_late_clock_in_marks_late():
    record = make_record(time_in=time(9, 15))

    apply(record, plan_clock_out(record, time(17, 15)))

    assert record.status == AttendanceStatus.LATE.value
    assert record.total_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("0.00")


def test_full_day_with_half_hour_break():
    record = make_record(time_in=time(8))

    apply(record, plan_break_start(record, time(12)))
    apply(record, plan_break_end(record, time(12, 30)))
    apply(record, plan_clock_out(record, time(18)))

    assert record.total_hours == Decimal("9.50")
    assert record.overtime_hours == Decimal("1.50")
    assert record.status == "present"


def test_clock_out_while_on_break_ignores_open_break():
    record = make_record(time_in=time(8), break_start=time(12))

    apply(record, plan_clock_out(record, time(16)))

    assert record.total_hours == Decimal("8.00")
    assert record.overtime_hours == Decimal("0.00")


@pytest.mark.parametrize("record", [None, make_record(time_in=time(8), time_out=time(17))])
def test_clock_out_without_active_clock_in_is_rejected(record):
    result = plan_clock_out(record, time(17))

    assert not result.accepted
    assert result.message == MSG_NO_ACTIVE_CLOCK_IN


# --- breaks ---


def test_break_start_then_end():
    record = make_record(time_in=time(8))

    result = plan_break_start(record, time(12))
    apply(record, result)
    assert result.state is AttendanceState.ON_BREAK
    assert record.break_start == time(12)

    result = plan_break_end(record, time(12, 45))
    apply(record, result)
    assert result.state is AttendanceState.CLOCKED_IN
    assert record.break_end == time(12, 45)


def test_second_break_replaces_first():
    record = make_record(time_in=time(8), break_start=time(10), break_end=time(10, 15))

    apply(record, plan_break_start(record, time(15)))

    assert record.break_start == time(15)
    assert record.break_end is None
    assert derive_state(record) is AttendanceState.ON_BREAK


def test_break_start_while_on_break_is_rejected():
    record = make_record(time_in=time(8), break_start=time(12))

    result = plan_break_start(record, time(12, 5))

    assert not result.accepted
    assert result.message == MSG_BREAK_ALREADY_STARTED


@pytest.mark.parametrize("record", [None, make_record(time_in=time(8), time_out=time(17))])
def test_breaks_require_clock_in(record):
    start = plan_break_start(record, time(12))
    end = plan_break_end(record, time(12))

    assert (start.accepted, start.message) == (False, MSG_CLOCK_IN_BEFORE_BREAK)
    assert end.accepted is False


def test_break_end_without_clock_in_asks_for_clock_in():
    result = plan_break_end(None, time(12))

    assert (result.accepted, result.message) == (False, MSG_CLOCK_IN_BEFORE_BREAK_END)
    assert result.state is AttendanceState.NOT_CLOCKED_IN


@pytest.mark.parametrize(
    "breaks, message",
    [
        ({}, MSG_NO_ACTIVE_BREAK),
        ({"break_start": time(12), "break_end": time(12, 30)}, MSG_BREAK_ALREADY_ENDED),
        ({"break_start": time(12)}, MSG_CLOCK_IN_BEFORE_BREAK_END),
    ],
    ids=["no-break", "break-ended", "break-open"],
)
def test_break_end_after_clock_out_reports_break_pair(breaks, message):
    record = make_record(time_in=time(8), time_out=time(17), **breaks)
    before = dict(vars(record))

    result = plan_break_end(record, time(17, 30))

    assert (result.accepted, result.message) == (False, message)
    assert result.state is AttendanceState.CLOCKED_OUT
    assert vars(record) == before


def test_break_end_without_break_start_is_rejected():
    record = make_record(time_in=time(8))
    before = dict(vars(record))

    result = plan_break_end(record, time(12))

    assert not result.accepted
    assert result.message == MSG_NO_ACTIVE_BREAK
    assert "start a break first" in result.message
    assert vars(record) == before


def test_break_end_twice_is_rejected():
    # a finished break reads as CLOCKED_IN with break_end set
    record = make_record(time_in=time(8), break_start=time(12), break_end=time(12, 30))

    result = plan_break_end(record, time(13))

    assert not result.accepted
    assert result.message == MSG_BREAK_ALREADY_ENDED


# --- hour computation ---


def test_worked_hours_are_never_negative():
    hours = compute_worked_hours(time(9), time(9, 30), DAY, break_start=time(8), break_end=time(10))

    assert hours.total_hours == Decimal("0.00")
    assert hours.overtime_hours == Decimal("0.00")


def test_inverted_break_counts_as_zero():
    hours = compute_worked_hours(time(8), time(12), DAY, break_start=time(11), break_end=time(10))

    assert hours.total_hours == Decimal("4.00")


def test_worked_hours_round_to_two_decimals():
    # 08:00:00 -> 08:20:00 is 0.3333... hours
    hours = compute_worked_hours(time(8), time(8, 20), DAY)

    assert hours.total_hours == Decimal("0.33")


def test_overtime_uses_standard_hours():
    hours = compute_worked_hours(time(6), time(16), DAY, standard_hours=9)

    assert hours.total_hours == Decimal("10.00")
    assert hours.overtime_hours == Decimal("1.00")


# --- patch ---


def test_record_patch_changes_skip_unset_fields():
    patch = RecordPatch(time_out=None, status=AttendanceStatus.LATE)

    assert patch.changes() == {"time_out": None, "status": AttendanceStatus.LATE}
    assert patch.time_in is UNSET
    assert RecordPatch().is_empty()
