"""
Health check endpoint - no authentication required
"""

from fastapi import APIRouter
from sqlalchemy import text

from ..config import API_VERSION
from ..db import SessionLocal
from ..queue_manager import retry_dispatcher

router = APIRouter()


@router.get("/healthz", include_in_schema=False)
def healthz():
    with SessionLocal() as db:
        db.execute(text("SELECT 1"))
    return {"status": "ok", "version": API_VERSION, "retry_queue": retry_dispatcher.get_queue_stats()}
