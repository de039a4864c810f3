"""
Attendance schemas: clock/break requests, record DTOs, status, manual entry, update,
listing, summary and daily stats.
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import iso_org, parse_clock


def _ser_clock(value: Optional[time]) -> Optional[str]:
    """Wall-clock times are returned as HH:MM:SS."""
    if value is None:
        return None
    return value.strftime("%H:%M:%S")


def _ser_hours(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _parse_clock_input(value):
    """Wall-clock inputs must be HH:MM or HH:MM:SS."""
    if isinstance(value, str):
        return parse_clock(value)
    return value


class ClockRequest(BaseModel):
    """Clock in or out for today"""
    action: Literal["in", "out"]
    notes: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=255, description="Free-form location reported by the client")


class BreakRequest(BaseModel):
    """Start or end a break for today"""
    action: Literal["start", "end"]
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceRecordDto(BaseModel):
    """One employee-day. Times are organization wall-clock times."""
    id: int
    employee_id: int
    date: date
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    break_start: Optional[time] = None
    break_end: Optional[time] = None
    total_hours: Optional[Decimal] = None
    overtime_hours: Optional[Decimal] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("time_in", "time_out", "break_start", "break_end", when_used="always")
    @classmethod
    def _ser_time(cls, value: Optional[time]) -> Optional[str]:
        return _ser_clock(value)

    @field_serializer("total_hours", "overtime_hours", when_used="always")
    @classmethod
    def _ser_decimal(cls, value: Optional[Decimal]) -> Optional[float]:
        return _ser_hours(value)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_org(dt)


class AttendanceListItemDto(AttendanceRecordDto):
    """Record joined with the employee's profile fields"""
    employee_name: Optional[str] = None
    emp_code: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None


class ActionResponse(BaseModel):
    """Outcome of a clock or break action; rejected actions carry the unchanged record"""
    status: Literal["success", "rejected"]
    message: str
    state: str
    record: Optional[AttendanceRecordDto] = None


class CapabilitiesDto(BaseModel):
    can_clock_in: bool = Field(..., alias="canClockIn")
    can_clock_out: bool = Field(..., alias="canClockOut")
    can_start_break: bool = Field(..., alias="canStartBreak")
    can_end_break: bool = Field(..., alias="canEndBreak")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CurrentStatusResponse(BaseModel):
    status: str
    record: Optional[AttendanceRecordDto] = None
    capabilities: CapabilitiesDto


class LegacyStatusResponse(BaseModel):
    """Older clients only distinguish clocked_in / clocked_out"""
    status: Literal["clocked_in", "clocked_out"]
    current_record: Optional[AttendanceRecordDto] = None
    employee_id: int


class ManualEntryRequest(BaseModel):
    """Record created by a manager or admin on behalf of an employee"""
    employee_id: int = Field(..., gt=0)
    date: date
    time_in: time
    time_out: Optional[time] = None
    hours_worked: Optional[Decimal] = Field(None, ge=0, le=24, decimal_places=2)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = Field(None, max_length=1000)
    reason: Optional[str] = Field(None, max_length=500, description="Why the entry was made manually")

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def parse_times(cls, value):
        return _parse_clock_input(value)

    @model_validator(mode="after")
    def validate_times(self) -> "ManualEntryRequest":
        if self.time_out is not None and self.time_out < self.time_in:
            raise ValueError("time_out must not be earlier than time_in")
        return self


class RecordUpdateRequest(BaseModel):
    """
    Partial update of a record. Only fields present in the request body are applied
    (an explicit null clears time_out or notes).
    """
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def parse_times(cls, value):
        return _parse_clock_input(value)

    @model_validator(mode="after")
    def validate_required_fields(self) -> "RecordUpdateRequest":
        # time_in and status are NOT NULL-like for a worked day; null only clears optional fields
        if "time_in" in self.model_fields_set and self.time_in is None:
            raise ValueError("time_in cannot be null")
        if "status" in self.model_fields_set and self.status is None:
            raise ValueError("status cannot be null")
        return self


class PaginationDto(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AttendanceListResponse(BaseModel):
    records: List[AttendanceListItemDto]
    pagination: PaginationDto


class SummaryPeriod(BaseModel):
    start_date: date
    end_date: date


class SummaryResponse(BaseModel):
    """Period statistics and pay figures; hours and money to 2 decimals, rates to 1"""
    employee_id: Optional[int] = None
    period: SummaryPeriod
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    leave_days: int
    on_time_days: int
    attendance_rate: float
    punctuality_rate: float
    regular_hours: float
    overtime_hours: float
    total_hours: float
    avg_daily_hours: float
    avg_check_in: Optional[str] = None
    avg_check_out: Optional[str] = None
    hourly_rate: float
    overtime_rate: float
    regular_pay: float
    overtime_pay: float
    monthly_earnings: float
    monthly_projection: float


class DailyStatsResponse(BaseModel):
    date: date
    present: int
    absent: int
    late: int
    on_leave: int
    total: int
    attendance_rate: float


class DeleteResponse(BaseModel):
    message: str
    id: int
    employee_id: int
    date: date
    deleted_by: int
    deleted_at: datetime

    @field_serializer("deleted_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_org(dt)
