"""
Attendance state machine: clock-in / break / clock-out rules for one employee-day.

Pure module: no database access. The state is derived from the record's fields on
every call, never stored. Planning an action returns a TransitionResult that either
carries a RecordPatch to persist or a rejection reason; a rejected plan mutates nothing.
"""
import enum
from dataclasses import dataclass, field, fields
from datetime import date, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from app.core.config import settings
from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import duration_seconds, is_late

HOURS_QUANTUM = Decimal("0.01")

MSG_CLOCKED_IN = "Clocked in successfully"
MSG_CLOCKED_OUT = "Clocked out successfully"
MSG_BREAK_STARTED = "Break started successfully"
MSG_BREAK_ENDED = "Break ended successfully"

MSG_ALREADY_CLOCKED_IN = "Already clocked in. Please clock out first."
MSG_NO_ACTIVE_CLOCK_IN = "No active clock-in record found. Please clock in first."
MSG_CLOCK_IN_BEFORE_BREAK = "You must clock in before starting a break."
MSG_CLOCK_IN_BEFORE_BREAK_END = "You must clock in before ending a break."
MSG_BREAK_ALREADY_STARTED = "Break already started. Please end current break first."
MSG_NO_ACTIVE_BREAK = "No active break found. Please start a break first."
MSG_BREAK_ALREADY_ENDED = "Break already ended."


class AttendanceState(str, enum.Enum):
    NOT_CLOCKED_IN = "not_clocked_in"
    CLOCKED_IN = "clocked_in"
    ON_BREAK = "on_break"
    CLOCKED_OUT = "clocked_out"


class ClockAction(str, enum.Enum):
    IN = "in"
    OUT = "out"


class BreakAction(str, enum.Enum):
    START = "start"
    END = "end"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class RecordPatch:
    """
    Partial update of an attendance record.

    Fields left UNSET are not touched; an explicit None clears the column.
    """
    time_in: Any = UNSET
    time_out: Any = UNSET
    break_start: Any = UNSET
    break_end: Any = UNSET
    total_hours: Any = UNSET
    overtime_hours: Any = UNSET
    status: Any = UNSET
    notes: Any = UNSET

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()

    def apply_to(self, record: Any) -> Any:
        for name, value in self.changes().items():
            if isinstance(value, enum.Enum):
                value = value.value
            setattr(record, name, value)
        return record


@dataclass(frozen=True)
class Capabilities:
    can_clock_in: bool = False
    can_clock_out: bool = False
    can_start_break: bool = False
    can_end_break: bool = False


@dataclass(frozen=True)
class TransitionResult:
    accepted: bool
    message: str
    state: AttendanceState
    patch: Optional[RecordPatch] = None
    creates_record: bool = False


@dataclass(frozen=True)
class WorkedHours:
    total_hours: Decimal
    overtime_hours: Decimal = field(default=Decimal("0.00"))


_CAPABILITIES = {
    AttendanceState.NOT_CLOCKED_IN: Capabilities(can_clock_in=True),
    AttendanceState.CLOCKED_IN: Capabilities(can_clock_out=True, can_start_break=True),
    AttendanceState.ON_BREAK: Capabilities(can_clock_out=True, can_end_break=True),
    # a finished day may be reopened by another clock-in
    AttendanceState.CLOCKED_OUT: Capabilities(can_clock_in=True),
}


def derive_state(record: Optional[Any]) -> AttendanceState:
    """Derive the employee-day state from today's record (None when there is none)."""
    if record is None or record.time_in is None:
        return AttendanceState.NOT_CLOCKED_IN
    if record.time_out is not None:
        return AttendanceState.CLOCKED_OUT
    if record.break_start is not None and record.break_end is None:
        return AttendanceState.ON_BREAK
    return AttendanceState.CLOCKED_IN


def get_capabilities(record: Optional[Any]) -> Capabilities:
    return _CAPABILITIES[derive_state(record)]


def compute_worked_hours(
    time_in: time,
    time_out: time,
    on_date: date,
    break_start: Optional[time] = None,
    break_end: Optional[time] = None,
    standard_hours: Optional[int] = None,
) -> WorkedHours:
    """
    Hours between time_in and time_out on on_date, minus the break when both ends are set.

    A break that ends before it starts counts as zero; the total is floored at zero
    and rounded to 2 decimals, and overtime is whatever exceeds the standard day.
    """
    if standard_hours is None:
        standard_hours = settings.STANDARD_WORK_HOURS

    worked = duration_seconds(time_in, time_out, on_date)
    if break_start is not None and break_end is not None:
        worked -= max(0, duration_seconds(break_start, break_end, on_date))

    total = (Decimal(max(0, worked)) / Decimal(3600)).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)
    overtime = max(Decimal("0.00"), total - Decimal(standard_hours))
    return WorkedHours(total_hours=total, overtime_hours=overtime.quantize(HOURS_QUANTUM))


def _rejected(message: str, state: AttendanceState) -> TransitionResult:
    return TransitionResult(accepted=False, message=message, state=state)


def _notes(notes: Optional[str]) -> Any:
    # supplied notes overwrite; omitted notes leave the column alone
    return UNSET if notes is None else notes


def reopen_patch(now_time: time, notes: Optional[str] = None) -> RecordPatch:
    """
    Clock-in on a day that already has a record.

    The single row per day is reused: the previous session's boundaries, break and
    derived hours are discarded until the next clock-out recomputes them.
    """
    return RecordPatch(
        time_in=now_time,
        time_out=None,
        break_start=None,
        break_end=None,
        total_hours=None,
        overtime_hours=None,
        status=AttendanceStatus.PRESENT,
        notes=_notes(notes),
    )


def plan_clock_in(record: Optional[Any], now_time: time, notes: Optional[str] = None) -> TransitionResult:
    state = derive_state(record)
    if state in (AttendanceState.CLOCKED_IN, AttendanceState.ON_BREAK):
        return _rejected(MSG_ALREADY_CLOCKED_IN, state)

    if record is None:
        patch = RecordPatch(time_in=now_time, status=AttendanceStatus.PRESENT, notes=_notes(notes))
        return TransitionResult(True, MSG_CLOCKED_IN, AttendanceState.CLOCKED_IN, patch, creates_record=True)

    return TransitionResult(True, MSG_CLOCKED_IN, AttendanceState.CLOCKED_IN, reopen_patch(now_time, notes))


def plan_clock_out(record: Optional[Any], now_time: time, notes: Optional[str] = None) -> TransitionResult:
    state = derive_state(record)
    if state not in (AttendanceState.CLOCKED_IN, AttendanceState.ON_BREAK):
        return _rejected(MSG_NO_ACTIVE_CLOCK_IN, state)

    hours = compute_worked_hours(
        record.time_in,
        now_time,
        record.date,
        break_start=record.break_start,
        break_end=record.break_end,
    )
    status = AttendanceStatus.LATE if is_late(record.time_in) else AttendanceStatus.PRESENT
    patch = RecordPatch(
        time_out=now_time,
        total_hours=hours.total_hours,
        overtime_hours=hours.overtime_hours,
        status=status,
        notes=_notes(notes),
    )
    return TransitionResult(True, MSG_CLOCKED_OUT, AttendanceState.CLOCKED_OUT, patch)


def plan_break_start(record: Optional[Any], now_time: time, notes: Optional[str] = None) -> TransitionResult:
    state = derive_state(record)
    if state in (AttendanceState.NOT_CLOCKED_IN, AttendanceState.CLOCKED_OUT):
        return _rejected(MSG_CLOCK_IN_BEFORE_BREAK, state)
    if state == AttendanceState.ON_BREAK:
        return _rejected(MSG_BREAK_ALREADY_STARTED, state)

    # only one break pair is stored, so a new break replaces the finished one
    patch = RecordPatch(break_start=now_time, break_end=None, notes=_notes(notes))
    return TransitionResult(True, MSG_BREAK_STARTED, AttendanceState.ON_BREAK, patch)


def plan_break_end(record: Optional[Any], now_time: time, notes: Optional[str] = None) -> TransitionResult:
    state = derive_state(record)
    if state == AttendanceState.NOT_CLOCKED_IN:
        return _rejected(MSG_CLOCK_IN_BEFORE_BREAK_END, state)
    if record.break_start is None:
        return _rejected(MSG_NO_ACTIVE_BREAK, state)
    if record.break_end is not None:
        return _rejected(MSG_BREAK_ALREADY_ENDED, state)
    if state == AttendanceState.CLOCKED_OUT:
        # break left open at clock-out
        return _rejected(MSG_CLOCK_IN_BEFORE_BREAK_END, state)

    patch = RecordPatch(break_end=now_time, notes=_notes(notes))
    return TransitionResult(True, MSG_BREAK_ENDED, AttendanceState.CLOCKED_IN, patch)


CLOCK_PLANNERS = {
    ClockAction.IN: plan_clock_in,
    ClockAction.OUT: plan_clock_out,
}

BREAK_PLANNERS = {
    BreakAction.START: plan_break_start,
    BreakAction.END: plan_break_end,
}
