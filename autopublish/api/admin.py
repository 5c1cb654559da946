"""
Operator endpoints: slot assignment, conflict repair, diagnostics, force runs
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ..auth.deps import require_admin
from ..db import get_db
from ..schemas.scheduling import (
    BatchResultOut, CapacityOut, ConflictOut, ForceRunRequest, JobOut, ResolutionOut, TenantSlotOut,
)
from ..scheduling.allocator import SlotAllocator
from ..scheduling.conflicts import ConflictDetector
from ..scheduling.pipeline import PipelineInvoker
from ..scheduling.recovery import Dispatcher, RecoveryScanner
from ..scheduling.rotation import CombinationSelector
from ..scheduling.runner import PublishRunner
from ..scheduling.slots import assignment_of
from ..scheduling.trigger import TriggerEvaluator
from ..services.audit import get_recent_runs
from .deps import get_dispatcher, get_invoker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/tenants/{tenant_id}/slot", response_model=TenantSlotOut)
def get_slot(tenant_id: str, db: Session = Depends(get_db)):
    tenant = SlotAllocator(db).get_tenant(tenant_id)
    assignment = assignment_of(tenant)
    return {"tenant_id": tenant_id, "assignment": assignment.to_dict() if assignment else None}


@router.post("/tenants/{tenant_id}/slot", response_model=TenantSlotOut)
def assign_slot(tenant_id: str, db: Session = Depends(get_db)):
    """Assign a slot if the tenant has none; an existing assignment is returned unchanged."""
    assignment = SlotAllocator(db).assign(tenant_id)
    return {"tenant_id": tenant_id, "assignment": assignment.to_dict()}


@router.post("/tenants/{tenant_id}/reassign-slot", response_model=TenantSlotOut)
def reassign_slot(tenant_id: str, db: Session = Depends(get_db)):
    assignment = SlotAllocator(db).reassign(tenant_id)
    logger.info("Slot reassigned by operator", extra={"component": "admin", "tenant_id": tenant_id})
    return {"tenant_id": tenant_id, "assignment": assignment.to_dict()}


@router.get("/tenants/{tenant_id}/rotation")
def rotation_status(tenant_id: str, db: Session = Depends(get_db)):
    SlotAllocator(db).get_tenant(tenant_id)
    return {"tenant_id": tenant_id, **CombinationSelector(db).rotation_status(tenant_id)}


@router.get("/schedule-conflicts", response_model=List[ConflictOut])
def list_conflicts(db: Session = Depends(get_db)):
    return [c.to_dict() for c in ConflictDetector(db).detect()]


@router.post("/schedule-conflicts", response_model=ResolutionOut)
def resolve_conflicts(db: Session = Depends(get_db)):
    return ConflictDetector(db).resolve_all().to_dict()


@router.get("/capacity", response_model=CapacityOut)
def capacity(db: Session = Depends(get_db)):
    return SlotAllocator(db).capacity().to_dict()


@router.get("/trigger-preview")
def trigger_preview(db: Session = Depends(get_db)):
    """What the next cron tick would do for each tenant, and why."""
    return {"tenants": TriggerEvaluator(db).preview()}


@router.post("/force-run", response_model=BatchResultOut)
def force_run(request: Optional[ForceRunRequest] = Body(None), invoker: PipelineInvoker = Depends(get_invoker)):
    """Run one tenant, or every eligible tenant, regardless of local time."""
    tenant_id = request.tenant_id if request else None
    return PublishRunner(invoker).force_run(tenant_id).to_dict()


@router.post("/jobs/{job_id}/retry", response_model=JobOut)
def retry_job(job_id: int, db: Session = Depends(get_db), dispatcher: Dispatcher = Depends(get_dispatcher)):
    return RecoveryScanner(db, dispatcher).retry_failed(job_id).to_dict()


@router.get("/audit")
def audit(limit: int = Query(50, ge=1, le=500), action: Optional[str] = None):
    return {"runs": get_recent_runs(limit=limit, action=action)}
