"""
Attendance endpoints.

Every authenticated employee can clock in/out, take breaks and read their own status,
records and summary. MANAGER/ADMIN can list everyone, enter records manually, edit
and delete them. Business-rule rejections of clock/break actions are returned as
400 with the current record so the client can reconcile.
"""
import logging
from datetime import date
from math import ceil
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.core.deps import get_clock, get_current_user, get_db, require_roles
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.employee import Employee, Role
from app.repositories.attendance_repository import SORTABLE_FIELDS
from app.schemas.attendance import (
    ActionResponse,
    AttendanceListItemDto,
    AttendanceListResponse,
    AttendanceRecordDto,
    BreakRequest,
    CapabilitiesDto,
    ClockRequest,
    CurrentStatusResponse,
    DailyStatsResponse,
    DeleteResponse,
    LegacyStatusResponse,
    ManualEntryRequest,
    PaginationDto,
    RecordUpdateRequest,
    SummaryResponse,
)
from app.services import attendance_service
from app.services.attendance_service import ActionOutcome
from app.services.summary_service import get_attendance_summary
from app.utils.datetime_utils import OrgClock

router = APIRouter()
_log = logging.getLogger(__name__)


def _record_dto(record: Optional[AttendanceRecord]) -> Optional[AttendanceRecordDto]:
    if record is None:
        return None
    return AttendanceRecordDto.model_validate(record)


def _action_response(outcome: ActionOutcome, response: Response) -> ActionResponse:
    if not outcome.accepted:
        response.status_code = 400
    return ActionResponse(
        status="success" if outcome.accepted else "rejected",
        message=outcome.message,
        state=outcome.state.value,
        record=_record_dto(outcome.record),
    )


@router.get("/current-status", response_model=CurrentStatusResponse)
async def current_status(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Today's record, the derived state and which actions are allowed next."""
    current = attendance_service.get_current_status(db, current_user.id, clock_source)
    caps = current.capabilities
    return CurrentStatusResponse(
        status=current.state.value,
        record=_record_dto(current.record),
        capabilities=CapabilitiesDto(
            can_clock_in=caps.can_clock_in,
            can_clock_out=caps.can_clock_out,
            can_start_break=caps.can_start_break,
            can_end_break=caps.can_end_break,
        ),
    )


@router.get("/status", response_model=LegacyStatusResponse)
async def legacy_status(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Clocked in (on a break counts) or clocked out, with the open record if any."""
    record = attendance_service.get_open_record(db, current_user.id, clock_source)
    return LegacyStatusResponse(
        status="clocked_in" if record is not None else "clocked_out",
        current_record=_record_dto(record),
        employee_id=current_user.id,
    )


@router.post("/clock", response_model=ActionResponse)
async def clock(
    body: ClockRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Clock in (creates or reopens today's record) or clock out (computes hours)."""
    if body.location:
        _log.debug("clock-%s location for employee_id=%s: %s", body.action, current_user.id, body.location)
    outcome = attendance_service.clock_action(db, current_user.id, body.action, clock_source, notes=body.notes)
    return _action_response(outcome, response)


@router.post("/break", response_model=ActionResponse)
async def take_break(
    body: BreakRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Start or end today's break."""
    outcome = attendance_service.break_action(db, current_user.id, body.action, clock_source, notes=body.notes)
    return _action_response(outcome, response)


@router.get("/stats", response_model=DailyStatsResponse)
async def daily_stats(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Today's counts by status and the attendance rate against active employees."""
    return DailyStatsResponse(**attendance_service.get_daily_stats(db, clock_source))


def _summary(
    db: Session,
    current_user: Employee,
    clock_source: OrgClock,
    employee_id: Optional[int],
    start_date: Optional[date],
    end_date: Optional[date],
    period: str,
) -> SummaryResponse:
    summary = get_attendance_summary(
        db,
        current_user,
        clock_source,
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        period=period,
    )
    return SummaryResponse(**summary.rounded())


@router.get("/summary", response_model=SummaryResponse)
async def my_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    period: Literal["week", "month", "year"] = Query("month"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Summary for the caller over the period (explicit dates override the period)."""
    return _summary(db, current_user, clock_source, None, start_date, end_date, period)


@router.get("/summary/{employee_id}", response_model=SummaryResponse)
async def employee_summary(
    employee_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    period: Literal["week", "month", "year"] = Query("month"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    clock_source: OrgClock = Depends(get_clock),
):
    """Summary for a given employee; employees may only ask for themselves."""
    return _summary(db, current_user, clock_source, employee_id, start_date, end_date, period)


@router.get("", response_model=AttendanceListResponse)
async def list_records(
    employee_id: Optional[int] = Query(None, description="Ignored for employees"),
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status_filter: Optional[AttendanceStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    sort: str = Query("date"),
    order: Literal["ASC", "DESC", "asc", "desc"] = Query("DESC"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Filtered, sorted and paginated records joined with employee details."""
    if sort not in SORTABLE_FIELDS:
        sort = "date"
    rows, total = attendance_service.list_attendance_records(
        db,
        current_user,
        employee_id=employee_id,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        status_filter=status_filter.value if status_filter else None,
        search=search,
        sort=sort,
        order=order.upper(),
        page=page,
        limit=limit,
    )
    records = [
        AttendanceListItemDto.model_validate(record).model_copy(
            update={
                "employee_name": employee.name,
                "emp_code": employee.emp_code,
                "department": employee.department,
                "position": employee.position,
            }
        )
        for record, employee in rows
    ]
    return AttendanceListResponse(
        records=records,
        pagination=PaginationDto(
            page=page,
            limit=limit,
            total=total,
            total_pages=ceil(total / limit) if total else 0,
        ),
    )


@router.post("/manual", response_model=AttendanceRecordDto, status_code=201)
async def manual_entry(
    body: ManualEntryRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.ADMIN)),
):
    """Create a record on behalf of an employee (one per employee per date)."""
    record = attendance_service.create_manual_record(
        db,
        current_user,
        employee_id=body.employee_id,
        on_date=body.date,
        time_in=body.time_in,
        time_out=body.time_out,
        hours_worked=body.hours_worked,
        record_status=body.status,
        notes=body.notes,
        reason=body.reason,
    )
    return AttendanceRecordDto.model_validate(record)


@router.put("/{record_id}", response_model=AttendanceRecordDto)
async def update_record(
    record_id: int,
    body: RecordUpdateRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.ADMIN)),
):
    """Edit times, status or notes; hours are recomputed from the resulting times."""
    changes = body.model_dump(exclude_unset=True)
    reason = changes.pop("reason", None)
    record = attendance_service.update_attendance_record(db, current_user, record_id, changes, reason=reason)
    return AttendanceRecordDto.model_validate(record)


@router.delete("/{record_id}", response_model=DeleteResponse)
async def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.ADMIN)),
):
    """Permanently delete a record."""
    deleted = attendance_service.delete_attendance_record(db, current_user, record_id)
    return DeleteResponse(message="Attendance record deleted successfully", **deleted)
