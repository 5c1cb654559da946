"""
Per-tick trigger evaluation.

A tenant is due when its local hour equals its slot's hour and its local
weekday belongs to its day-pair. Slot hours are pairwise distinct, so an
hourly tick fires each tenant exactly once per scheduled day.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from autopublish.models import Location, Template, Tenant
from autopublish.time_utils import resolve_zone, to_local, utcnow
from .slots import SlotAssignment, assignment_of

logger = logging.getLogger(__name__)


@dataclass
class TriggerDecision:
    tenant: Tenant
    due: bool
    local_time: Optional[datetime] = None
    assignment: Optional[SlotAssignment] = None
    reason: Optional[str] = None
    timezone_fallback: bool = False
    issues: List[str] = field(default_factory=list)

    def next_run(self) -> Optional[datetime]:
        """Next tenant-local publish moment strictly after local_time."""
        if self.assignment is None or self.local_time is None:
            return None
        hour = self.assignment.time_slot.hour
        for offset in range(0, 8):
            day = (self.local_time + timedelta(days=offset)).date()
            if not self.assignment.day_pair.includes(day.isoweekday()):
                continue
            candidate = self.local_time.replace(
                year=day.year, month=day.month, day=day.day,
                hour=hour, minute=0, second=0, microsecond=0,
            )
            if candidate > self.local_time:
                return candidate
        return None

    def to_dict(self):
        next_run = self.next_run()
        return {
            "tenant_id": self.tenant.id,
            "timezone": self.tenant.timezone,
            "timezone_fallback": self.timezone_fallback,
            "local_time": self.local_time.isoformat() if self.local_time else None,
            "assignment": self.assignment.to_dict() if self.assignment else None,
            "would_run": self.due,
            "reason": self.reason,
            "issues": self.issues,
            "next_run": next_run.isoformat() if next_run else None,
        }


def evaluate(tenant: Tenant, now: datetime) -> TriggerDecision:
    """Decide whether `tenant` fires at `now` (aware, or naive UTC)."""
    zone, fell_back = resolve_zone(tenant.timezone)
    local = to_local(now, zone)
    assignment = assignment_of(tenant)
    decision = TriggerDecision(tenant, False, local, assignment, timezone_fallback=fell_back)

    if not tenant.is_active:
        decision.reason = "tenant inactive"
    elif not tenant.auto_schedule_enabled:
        decision.reason = "auto scheduling disabled"
    elif assignment is None:
        decision.reason = "missing day pair or time slot"
    elif not assignment.day_pair.includes(local.isoweekday()):
        decision.reason = f"{local.strftime('%A')} is not in {assignment.day_pair.label}"
    elif local.hour != assignment.time_slot.hour:
        decision.reason = f"local hour {local.hour:02d} is not slot hour {assignment.time_slot.hour:02d}"
    else:
        decision.due = True
    return decision


class TriggerEvaluator:
    def __init__(self, db: Session):
        self.db = db

    def eligible(self):
        return self.db.query(Tenant).filter(
            Tenant.is_active.is_(True),
            Tenant.auto_schedule_enabled.is_(True),
        ).order_by(Tenant.created_at, Tenant.id).all()

    def due_now(self, now: Optional[datetime] = None) -> List[Tenant]:
        now = now or utcnow()
        due = []
        for tenant in self.eligible():
            decision = evaluate(tenant, now)
            if decision.due:
                due.append(tenant)
            elif decision.assignment is None:
                logger.info("Skipping tenant: %s", decision.reason,
                            extra={"component": "trigger", "tenant_id": tenant.id})
        logger.info("Trigger evaluation complete", extra={"component": "trigger", "due": len(due)})
        return due

    def preview(self, now: Optional[datetime] = None) -> List[dict]:
        """Per-tenant diagnosis for every tenant, including disabled ones."""
        now = now or utcnow()
        templates = dict(self.db.query(Template.tenant_id, func.count(Template.id))
                         .filter(Template.is_active.is_(True)).group_by(Template.tenant_id).all())
        locations = dict(self.db.query(Location.tenant_id, func.count(Location.id))
                         .filter(Location.is_active.is_(True)).group_by(Location.tenant_id).all())

        result = []
        for tenant in self.db.query(Tenant).order_by(Tenant.created_at, Tenant.id).all():
            decision = evaluate(tenant, now)
            if decision.timezone_fallback:
                decision.issues.append(f"invalid timezone {tenant.timezone!r}")
            if not templates.get(tenant.id):
                decision.issues.append("no active templates")
            if not locations.get(tenant.id):
                decision.issues.append("no active locations")
            result.append(decision.to_dict())
        return result
