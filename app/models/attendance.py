"""
Attendance record model: one row per employee per civil date (organization timezone).
"""
from sqlalchemy import Column, Integer, Date, Time, DateTime, ForeignKey, String, Text, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"
    # leave sub-kinds used by manual entries and reporting
    SICK = "sick"
    VACATION = "vacation"
    HOLIDAY = "holiday"


LEAVE_SUB_KINDS = (AttendanceStatus.SICK, AttendanceStatus.VACATION, AttendanceStatus.HOLIDAY)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # civil date in settings.ORG_TIMEZONE
    time_in = Column(Time, nullable=True)
    time_out = Column(Time, nullable=True)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)
    total_hours = Column(Numeric(5, 2), nullable=True)  # set at clock-out
    overtime_hours = Column(Numeric(5, 2), nullable=True)  # set at clock-out
    status = Column(String, nullable=False, default=AttendanceStatus.PRESENT.value)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_records_employee_date"),
    )

    # UPDATE ... WHERE version = <loaded>; a concurrent writer raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    employee = relationship("Employee", backref="attendance_records")
