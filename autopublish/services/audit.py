"""
Scheduler Run Audit Service
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any
from ..db import SessionLocal
from ..models.audit_log import AuditLog
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


def record_run(
    action: str,
    status: str,
    started_at: datetime,
    result: Optional[Dict[str, Any]] = None,
    error_message: Optional[str] = None,
    completed_at: Optional[datetime] = None
) -> Optional[int]:
    """Append one audit row for a finished scheduler batch"""

    completed_at = completed_at or utcnow()
    db = SessionLocal()
    try:
        audit_log = AuditLog(
            action=action,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            result=result,
            error_message=error_message
        )

        db.add(audit_log)
        db.commit()

        logger.info(f"Audit log: {action} finished with {status}")
        return audit_log.id

    except Exception as e:
        logger.error(f"Failed to write audit log for {action}: {e}")
        db.rollback()
        return None
    finally:
        db.close()


def get_recent_runs(limit: int = 100, action: Optional[str] = None) -> list:
    """Get recent scheduler runs, newest first"""

    db = SessionLocal()
    try:
        query = db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        logs = query.order_by(AuditLog.started_at.desc(), AuditLog.id.desc())\
                    .limit(limit)\
                    .all()

        return [
            {
                "id": log.id,
                "action": log.action,
                "status": log.status,
                "started_at": log.started_at.isoformat(),
                "completed_at": log.completed_at.isoformat() if log.completed_at else None,
                "duration_ms": log.duration_ms,
                "result": log.result,
                "error_message": log.error_message
            }
            for log in logs
        ]

    finally:
        db.close()
