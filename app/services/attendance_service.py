"""
Attendance service: clock in/out and breaks for the current employee, current-status
query, manual entry / edit / delete for managers and admins, listing and daily stats.

Dates and times come from the injected OrgClock (organization timezone). Each action
reads today's record, plans the transition with the state machine and persists the
resulting patch in one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.employee import Employee, Role
from app.repositories import attendance_repository as records_repo
from app.repositories.employee_repository import count_active_employees, employee_exists
from app.services.attendance_state_machine import (
    BREAK_PLANNERS,
    CLOCK_PLANNERS,
    AttendanceState,
    BreakAction,
    Capabilities,
    ClockAction,
    RecordPatch,
    TransitionResult,
    UNSET,
    compute_worked_hours,
    derive_state,
    get_capabilities,
)
from app.services.audit_service import log_audit
from app.utils.datetime_utils import OrgClock, now_utc

_log = logging.getLogger(__name__)

MSG_CONCURRENT_UPDATE = "Attendance record was changed by another request. Please refresh and try again."

Planner = Callable[[Optional[AttendanceRecord], time, Optional[str]], TransitionResult]


@dataclass
class ActionOutcome:
    accepted: bool
    message: str
    state: AttendanceState
    record: Optional[AttendanceRecord]


@dataclass
class CurrentStatus:
    state: AttendanceState
    record: Optional[AttendanceRecord]
    capabilities: Capabilities


def _is_privileged(user: Employee) -> bool:
    return user.role in (Role.MANAGER, Role.ADMIN)


def _run_transition(
    db: Session,
    employee_id: int,
    clock: OrgClock,
    planner: Planner,
    label: str,
    notes: Optional[str],
) -> ActionOutcome:
    today = clock.today()
    now_time = clock.current_time()
    record = records_repo.find_latest_record(db, employee_id, today)
    result = planner(record, now_time, notes)

    if not result.accepted:
        _log.info(
            "attendance %s rejected: employee_id=%s date=%s state=%s reason=%s",
            label, employee_id, today, result.state.value, result.message,
        )
        return ActionOutcome(False, result.message, result.state, record)

    try:
        if result.creates_record:
            record = records_repo.create_record(db, employee_id, today, result.patch)
        else:
            records_repo.update_record(db, record, result.patch)
        db.commit()
    except (IntegrityError, StaleDataError) as exc:
        # another request wrote this employee-day first; report its row instead
        db.rollback()
        current = records_repo.find_latest_record(db, employee_id, today)
        _log.warning(
            "attendance %s lost a concurrent write: employee_id=%s date=%s error=%s",
            label, employee_id, today, type(exc).__name__,
        )
        return ActionOutcome(False, MSG_CONCURRENT_UPDATE, derive_state(current), current)
    except SQLAlchemyError:
        db.rollback()
        _log.exception("attendance %s failed: employee_id=%s date=%s", label, employee_id, today)
        raise

    db.refresh(record)
    _log.info(
        "attendance %s: employee_id=%s record_id=%s date=%s time=%s",
        label, employee_id, record.id, today, now_time,
    )
    return ActionOutcome(True, result.message, result.state, record)


def clock_action(
    db: Session,
    employee_id: int,
    action: ClockAction,
    clock: OrgClock,
    notes: Optional[str] = None,
) -> ActionOutcome:
    """Clock the employee in or out for today."""
    action = ClockAction(action)
    return _run_transition(db, employee_id, clock, CLOCK_PLANNERS[action], f"clock-{action.value}", notes)


def break_action(
    db: Session,
    employee_id: int,
    action: BreakAction,
    clock: OrgClock,
    notes: Optional[str] = None,
) -> ActionOutcome:
    """Start or end the employee's break for today."""
    action = BreakAction(action)
    return _run_transition(db, employee_id, clock, BREAK_PLANNERS[action], f"break-{action.value}", notes)


def get_current_status(db: Session, employee_id: int, clock: OrgClock) -> CurrentStatus:
    """Today's record with the state and capabilities derived from it."""
    record = records_repo.find_latest_record(db, employee_id, clock.today())
    return CurrentStatus(
        state=derive_state(record),
        record=record,
        capabilities=get_capabilities(record),
    )


def get_open_record(db: Session, employee_id: int, clock: OrgClock) -> Optional[AttendanceRecord]:
    """Today's record only while the employee is clocked in (on a break included)."""
    record = records_repo.find_latest_record(db, employee_id, clock.today())
    if derive_state(record) in (AttendanceState.CLOCKED_IN, AttendanceState.ON_BREAK):
        return record
    return None


def _get_record_or_404(db: Session, record_id: int) -> AttendanceRecord:
    record = records_repo.get_record(db, record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance record not found")
    return record


def create_manual_record(
    db: Session,
    actor: Employee,
    *,
    employee_id: int,
    on_date: date,
    time_in: time,
    time_out: Optional[time] = None,
    hours_worked: Optional[Decimal] = None,
    record_status: AttendanceStatus = AttendanceStatus.PRESENT,
    notes: Optional[str] = None,
    reason: Optional[str] = None,
) -> AttendanceRecord:
    """
    Create a record on behalf of an employee.

    total_hours is hours_worked when given, else derived from time_in/time_out.
    Overtime is left unset; summaries derive it from total_hours.

    Raises:
        HTTPException: 404 for unknown or inactive employees, 409 when the day already has a record
    """
    if not employee_exists(db, employee_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    if records_repo.find_latest_record(db, employee_id, on_date) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Attendance record already exists for this date",
        )

    total_hours = hours_worked
    if total_hours is None and time_out is not None:
        total_hours = compute_worked_hours(time_in, time_out, on_date).total_hours

    patch = RecordPatch(
        time_in=time_in,
        time_out=time_out,
        total_hours=total_hours,
        status=record_status,
        notes=notes,
    )
    try:
        record = records_repo.create_record(db, employee_id, on_date, patch)
        log_audit(
            db=db,
            actor_id=actor.id,
            action="ATTENDANCE_MANUAL_CREATE",
            entity_type="attendance_records",
            entity_id=record.id,
            meta={"employee_id": employee_id, "date": on_date, **patch.changes(), "reason": reason},
            commit=False,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Attendance record already exists for this date",
        )
    except SQLAlchemyError:
        db.rollback()
        _log.exception("manual attendance entry failed: employee_id=%s date=%s", employee_id, on_date)
        raise

    db.refresh(record)
    _log.info("manual attendance entry: record_id=%s employee_id=%s by=%s", record.id, employee_id, actor.id)
    return record


def update_attendance_record(
    db: Session,
    actor: Employee,
    record_id: int,
    changes: Dict[str, Any],
    reason: Optional[str] = None,
) -> AttendanceRecord:
    """
    Patch time_in / time_out / status / notes of a record.

    When both times are known afterwards, total_hours and overtime_hours are
    recomputed (kept as-is if the result is not positive); clearing time_out clears them.

    Raises:
        HTTPException: 404 unknown record, 400 nothing to update, 409 concurrent edit
    """
    record = _get_record_or_404(db, record_id)
    allowed = {"time_in", "time_out", "status", "notes"}
    patch = RecordPatch(**{k: v for k, v in changes.items() if k in allowed})
    if patch.is_empty():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    final_in = patch.time_in if patch.time_in is not UNSET else record.time_in
    final_out = patch.time_out if patch.time_out is not UNSET else record.time_out
    derived: Dict[str, Any] = {}
    if final_in is not None and final_out is not None:
        hours = compute_worked_hours(final_in, final_out, record.date, record.break_start, record.break_end)
        if hours.total_hours > 0:
            derived = {"total_hours": hours.total_hours, "overtime_hours": hours.overtime_hours}
    elif patch.time_out is None:
        derived = {"total_hours": None, "overtime_hours": None}
    if derived:
        patch = RecordPatch(**{**patch.changes(), **derived})

    old_values = {name: getattr(record, name) for name in patch.changes()}
    try:
        records_repo.update_record(db, record, patch)
        log_audit(
            db=db,
            actor_id=actor.id,
            action="ATTENDANCE_UPDATE",
            entity_type="attendance_records",
            entity_id=record.id,
            meta={"old": old_values, "new": patch.changes(), "reason": reason},
            commit=False,
        )
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=MSG_CONCURRENT_UPDATE)
    except SQLAlchemyError:
        db.rollback()
        _log.exception("attendance update failed: record_id=%s", record_id)
        raise

    db.refresh(record)
    _log.info("attendance record updated: record_id=%s fields=%s by=%s", record.id, sorted(patch.changes()), actor.id)
    return record


def delete_attendance_record(db: Session, actor: Employee, record_id: int) -> Dict[str, Any]:
    """Permanently delete a record; returns a description of what was removed."""
    record = _get_record_or_404(db, record_id)
    deleted = {
        "id": record.id,
        "employee_id": record.employee_id,
        "date": record.date,
        "deleted_by": actor.id,
        "deleted_at": now_utc(),
    }
    try:
        records_repo.delete_record(db, record)
        log_audit(
            db=db,
            actor_id=actor.id,
            action="ATTENDANCE_DELETE",
            entity_type="attendance_records",
            entity_id=deleted["id"],
            meta=deleted,
            commit=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        _log.exception("attendance delete failed: record_id=%s", record_id)
        raise

    _log.info("attendance record %s deleted by user %s", deleted["id"], actor.id)
    return deleted


def list_attendance_records(
    db: Session,
    current_user: Employee,
    *,
    employee_id: Optional[int] = None,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "date",
    order: str = "DESC",
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[Tuple[AttendanceRecord, Employee]], int]:
    """
    List records with role-based scoping.

    MANAGER/ADMIN see everyone (or employee_id when given); other roles only
    their own records, whatever employee_id says.
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must be less than or equal to end_date",
        )

    target_id = employee_id if _is_privileged(current_user) else current_user.id
    return records_repo.search_records(
        db,
        employee_id=target_id,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
        search=search,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )


def get_daily_stats(db: Session, clock: OrgClock) -> Dict[str, Any]:
    """Today's record counts by status against the number of active employees."""
    today = clock.today()
    counts = records_repo.count_by_status(db, today)
    total = count_active_employees(db)
    present = counts.get(AttendanceStatus.PRESENT.value, 0)
    return {
        "date": today,
        "present": present,
        "absent": counts.get(AttendanceStatus.ABSENT.value, 0),
        "late": counts.get(AttendanceStatus.LATE.value, 0),
        "on_leave": counts.get(AttendanceStatus.ON_LEAVE.value, 0),
        "total": total,
        "attendance_rate": round(present / total * 100, 1) if total else 0.0,
    }
