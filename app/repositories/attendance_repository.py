"""
Attendance record repository.

Functions only flush; the calling service owns the transaction and commits once
per action so a transition is a single atomic write.
"""
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.attendance import AttendanceRecord
from app.models.employee import Employee
from app.services.attendance_state_machine import RecordPatch

SORTABLE_FIELDS = {
    "date": AttendanceRecord.date,
    "time_in": AttendanceRecord.time_in,
    "time_out": AttendanceRecord.time_out,
    "total_hours": AttendanceRecord.total_hours,
    "status": AttendanceRecord.status,
}


def get_record(db: Session, record_id: int) -> Optional[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()


def find_latest_record(db: Session, employee_id: int, on_date: date) -> Optional[AttendanceRecord]:
    """Most recent record for the employee on the given civil date."""
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == on_date,
        )
        .order_by(AttendanceRecord.created_at.desc(), AttendanceRecord.id.desc())
        .first()
    )


def find_records_in_range(
    db: Session,
    employee_id: Optional[int],
    start_date: date,
    end_date: date,
    status: Optional[str] = None,
) -> List[AttendanceRecord]:
    """Records with start_date <= date <= end_date; employee_id None means all employees."""
    query = db.query(AttendanceRecord).filter(
        AttendanceRecord.date >= start_date,
        AttendanceRecord.date <= end_date,
    )
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    if status is not None:
        query = query.filter(AttendanceRecord.status == status)
    return query.order_by(AttendanceRecord.date.asc(), AttendanceRecord.id.asc()).all()


def search_records(
    db: Session,
    *,
    employee_id: Optional[int] = None,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "date",
    order: str = "DESC",
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[Tuple[AttendanceRecord, Employee]], int]:
    """
    Filtered, sorted, paginated record listing joined with the employee.

    A single `on_date` takes precedence over the start/end range.

    Returns:
        (rows, total) where rows is a list of (record, employee) pairs for the page
        and total is the unpaginated match count
    """
    query = db.query(AttendanceRecord, Employee).join(
        Employee, AttendanceRecord.employee_id == Employee.id
    )

    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    if on_date is not None:
        query = query.filter(AttendanceRecord.date == on_date)
    else:
        if start_date is not None:
            query = query.filter(AttendanceRecord.date >= start_date)
        if end_date is not None:
            query = query.filter(AttendanceRecord.date <= end_date)
    if status is not None:
        query = query.filter(AttendanceRecord.status == status)
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(or_(Employee.name.ilike(term), Employee.emp_code.ilike(term)))

    total = query.count()

    column = SORTABLE_FIELDS.get(sort, AttendanceRecord.date)
    ordering = column.asc() if order.upper() == "ASC" else column.desc()
    rows = (
        query.order_by(ordering, AttendanceRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def count_by_status(db: Session, on_date: date) -> Dict[str, int]:
    rows = (
        db.query(AttendanceRecord.status, func.count(AttendanceRecord.id))
        .filter(AttendanceRecord.date == on_date)
        .group_by(AttendanceRecord.status)
        .all()
    )
    return {status: count for status, count in rows}


def create_record(db: Session, employee_id: int, on_date: date, patch: RecordPatch) -> AttendanceRecord:
    """Insert a record for (employee_id, on_date); the unique constraint rejects a second row."""
    record = AttendanceRecord(employee_id=employee_id, date=on_date)
    patch.apply_to(record)
    db.add(record)
    db.flush()
    return record


def update_record(db: Session, record: AttendanceRecord, patch: RecordPatch) -> AttendanceRecord:
    """
    Apply a partial update.

    The flush is a versioned UPDATE; if another request changed the row since it
    was loaded, SQLAlchemy raises StaleDataError.
    """
    patch.apply_to(record)
    db.flush()
    return record


def delete_record(db: Session, record: AttendanceRecord) -> None:
    db.delete(record)
    db.flush()
