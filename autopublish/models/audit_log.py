"""
Scheduler run audit log model
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from autopublish.db import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # e.g., "cron_publish", "force_run", "cron_recover"
    status = Column(String(16), nullable=False, index=True)  # SUCCESS | PARTIAL | FAILED
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    result = Column(JSON, nullable=True)  # structured per-tenant outcome list
    error_message = Column(Text, nullable=True)
