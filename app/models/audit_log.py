"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g. "ATTENDANCE_MANUAL_CREATE", "ATTENDANCE_DELETE"
    entity_type = Column(String, nullable=False)  # e.g. "attendance_records"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # set explicitly by log_audit; server defaults on SQLite DateTime are unreliable
    created_at = Column(DateTime(timezone=True), nullable=False)
