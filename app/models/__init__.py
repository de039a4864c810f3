"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.attendance import AttendanceRecord, AttendanceStatus, LEAVE_SUB_KINDS

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceStatus",
    "LEAVE_SUB_KINDS",
]
