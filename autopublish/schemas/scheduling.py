from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ForceRunRequest(BaseModel):
    tenant_id: Optional[str] = Field(None, max_length=64, description="Run one tenant; omit for every eligible tenant")


class SlotAssignmentOut(BaseModel):
    day_pair: str
    days: str
    time_slot: int = Field(..., ge=0, le=9)
    time: str
    collides: bool = False
    overbooked: bool = False


class TenantSlotOut(BaseModel):
    tenant_id: str
    assignment: Optional[SlotAssignmentOut]


class TenantOutcomeOut(BaseModel):
    tenant_id: str
    outcome: str
    job_id: Optional[int] = None
    reason: Optional[str] = None


class BatchResultOut(BaseModel):
    action: str
    status: str
    started_at: str
    duration_ms: int
    processed: int
    counts: Dict[str, int]
    outcomes: List[TenantOutcomeOut]


class RecoveryResultOut(BaseModel):
    action: str
    status: str
    checked_jobs: int
    retried: List[int]
    review: List[int]
    failed: List[int]
    assets_failed: List[int]
    embeds_cleared: List[int]
    errors: List[Dict[str, Any]]


class ConflictOut(BaseModel):
    weekday: str
    time_slot: int
    time: str
    tenant_ids: List[str]


class ResolutionOut(BaseModel):
    conflicts_found: int
    reassigned: List[Dict[str, Any]]
    remaining: List[ConflictOut]
    errors: List[Dict[str, Any]] = []


class CapacityOut(BaseModel):
    max_per_day: int
    per_day: Dict[str, int]
    per_pair: Dict[str, int]
    used_keys: int
    total_keys: int
    tenants: int
    tenant_capacity: int


class JobOut(BaseModel):
    id: int
    tenant_id: str
    template_id: int
    location_id: int
    rendered_text: str
    scheduled_date: Optional[str]
    scheduled_at: Optional[str]
    scheduled_time: Optional[str]
    status: str
    retry_count: int
    last_error: Optional[str]
