"""
Attendance summary service - period statistics and pay figures for one employee.

`summarize` is pure: it turns a list of records plus a wage profile into a
PeriodSummary. Sums are accumulated as Decimal at full precision and rounded once
in PeriodSummary.rounded().
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.attendance import AttendanceStatus, LEAVE_SUB_KINDS
from app.models.employee import Employee, Role
from app.repositories import attendance_repository as records_repo
from app.repositories.employee_repository import WageProfile, employee_exists, get_wage_profile
from app.utils.datetime_utils import OrgClock, seconds_to_clock, time_to_seconds

_log = logging.getLogger(__name__)

PERIODS = ("week", "month", "year")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")
_ONE_PLACE = Decimal("0.1")


def _round(value: Decimal, quantum: Decimal = _TWO_PLACES) -> float:
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PeriodSummary:
    employee_id: Optional[int]
    start_date: date
    end_date: date
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    leave_days: int
    on_time_days: int
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    avg_daily_hours: Decimal
    avg_check_in: Optional[str]
    avg_check_out: Optional[str]
    attendance_rate: Decimal
    punctuality_rate: Decimal
    hourly_rate: Decimal
    overtime_rate: Decimal  # hourly overtime pay (wage * multiplier)
    regular_pay: Decimal
    overtime_pay: Decimal
    monthly_earnings: Decimal
    monthly_projection: Decimal

    def rounded(self) -> Dict[str, Any]:
        """Presentation values: hours and money to 2 decimals, rates to 1 decimal."""
        return {
            "employee_id": self.employee_id,
            "period": {"start_date": self.start_date, "end_date": self.end_date},
            "total_days": self.total_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "leave_days": self.leave_days,
            "on_time_days": self.on_time_days,
            "attendance_rate": _round(self.attendance_rate, _ONE_PLACE),
            "punctuality_rate": _round(self.punctuality_rate, _ONE_PLACE),
            "regular_hours": _round(self.regular_hours),
            "overtime_hours": _round(self.overtime_hours),
            "total_hours": _round(self.total_hours),
            "avg_daily_hours": _round(self.avg_daily_hours),
            "avg_check_in": self.avg_check_in,
            "avg_check_out": self.avg_check_out,
            "hourly_rate": _round(self.hourly_rate),
            "overtime_rate": _round(self.overtime_rate),
            "regular_pay": _round(self.regular_pay),
            "overtime_pay": _round(self.overtime_pay),
            "monthly_earnings": _round(self.monthly_earnings),
            "monthly_projection": _round(self.monthly_projection),
        }


def _mean_clock(seconds_total: int, count: int) -> Optional[str]:
    if count == 0:
        return None
    return seconds_to_clock(seconds_total / count)


def summarize(
    records: Iterable[Any],
    wage_profile: WageProfile,
    start_date: date,
    end_date: date,
    employee_id: Optional[int] = None,
) -> PeriodSummary:
    """
    Aggregate attendance records of one employee over [start_date, end_date].

    Day counts use the stored status only: a day stored as 'late' is not a present
    day, and on_time_days counts 'present' rows. Records without total_hours add
    nothing to hour sums or averages.
    """
    standard = Decimal(settings.STANDARD_WORK_HOURS)

    counts = {s.value: 0 for s in AttendanceStatus}
    total_days = 0
    regular_hours = _ZERO
    overtime_hours = _ZERO
    total_hours = _ZERO
    hours_count = 0
    check_in_seconds = check_in_count = 0
    check_out_seconds = check_out_count = 0

    for record in records:
        total_days += 1
        record_status = record.status.value if isinstance(record.status, AttendanceStatus) else record.status
        counts[record_status] = counts.get(record_status, 0) + 1

        if record.total_hours is not None:
            hours = Decimal(record.total_hours)
            total_hours += hours
            hours_count += 1
            regular_hours += min(hours, standard)
            if record.overtime_hours is not None:
                overtime_hours += Decimal(record.overtime_hours)
            else:
                overtime_hours += max(_ZERO, hours - standard)
        elif record.overtime_hours is not None:
            overtime_hours += Decimal(record.overtime_hours)

        if record.time_in is not None:
            check_in_seconds += time_to_seconds(record.time_in)
            check_in_count += 1
        if record.time_out is not None:
            check_out_seconds += time_to_seconds(record.time_out)
            check_out_count += 1

    present_days = counts[AttendanceStatus.PRESENT.value]
    on_time_days = present_days
    leave_days = sum(counts[kind.value] for kind in LEAVE_SUB_KINDS)

    # no records means no negative signal
    attendance_rate = Decimal(present_days) / Decimal(total_days) * _HUNDRED if total_days else _HUNDRED
    punctuality_rate = Decimal(on_time_days) / Decimal(present_days) * _HUNDRED if present_days else _HUNDRED

    avg_daily_hours = total_hours / Decimal(hours_count) if hours_count else _ZERO

    wage = wage_profile.wage
    overtime_rate_value = wage_profile.overtime_hourly_rate
    regular_pay = regular_hours * wage
    overtime_pay = overtime_hours * overtime_rate_value

    return PeriodSummary(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        present_days=present_days,
        absent_days=counts[AttendanceStatus.ABSENT.value],
        late_days=counts[AttendanceStatus.LATE.value],
        leave_days=leave_days,
        on_time_days=on_time_days,
        regular_hours=regular_hours,
        overtime_hours=overtime_hours,
        total_hours=total_hours,
        avg_daily_hours=avg_daily_hours,
        avg_check_in=_mean_clock(check_in_seconds, check_in_count),
        avg_check_out=_mean_clock(check_out_seconds, check_out_count),
        attendance_rate=attendance_rate,
        punctuality_rate=punctuality_rate,
        hourly_rate=wage,
        overtime_rate=overtime_rate_value,
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        monthly_earnings=regular_pay + overtime_pay,
        monthly_projection=avg_daily_hours * wage * Decimal(settings.WORKING_DAYS_PER_MONTH),
    )


def resolve_period(
    today: date,
    period: str = "month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Date range for a summary.

    Explicit start/end dates win when both are given; otherwise the range ends today
    and starts 7 days back ("week"), on the 1st of the month ("month") or on
    January 1st (any other period).
    """
    if start_date is not None and end_date is not None:
        if start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date must be less than or equal to end_date",
            )
        return start_date, end_date

    if period == "week":
        start = today - timedelta(days=7)
    elif period == "month":
        start = today.replace(day=1)
    else:
        start = today.replace(month=1, day=1)
    return start, today


def get_attendance_summary(
    db: Session,
    current_user: Employee,
    clock: OrgClock,
    employee_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period: str = "month",
) -> PeriodSummary:
    """
    Summary for the requested employee (managers/admins) or for the caller.

    Raises:
        HTTPException: 403 when an employee asks for someone else, 404 for unknown
            employees, 400 for an inverted date range
    """
    target_id = employee_id if employee_id is not None else current_user.id
    if target_id != current_user.id and current_user.role not in (Role.MANAGER, Role.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own attendance summary",
        )
    if not employee_exists(db, target_id, active_only=False):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    start, end = resolve_period(clock.today(), period, start_date, end_date)
    records = records_repo.find_records_in_range(db, target_id, start, end)
    wage_profile = get_wage_profile(db, target_id)

    _log.debug(
        "summary: employee_id=%s period=%s..%s records=%s wage=%s",
        target_id, start, end, len(records), wage_profile.wage,
    )
    return summarize(records, wage_profile, start, end, employee_id=target_id)
