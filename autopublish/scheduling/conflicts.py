"""
Detection and repair of (weekday, slot) collisions.

Two pairs that share a weekday (MON_WED and WED_FRI both touch Wednesday) can
put two tenants on the same weekday at the same hour. Repair is an explicit
operator action; the publish path never reassigns anybody.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.orm import Session

from .allocator import SlotAllocator, scheduled_tenants
from .slots import TimeSlot, Weekday

logger = logging.getLogger(__name__)


@dataclass
class ScheduleConflict:
    weekday: Weekday
    time_slot: TimeSlot
    tenant_ids: List[str]

    def to_dict(self):
        return {
            "weekday": self.weekday.name,
            "time_slot": int(self.time_slot),
            "time": self.time_slot.label,
            "tenant_ids": list(self.tenant_ids),
        }


@dataclass
class ResolutionReport:
    conflicts_found: int = 0
    reassigned: List[dict] = field(default_factory=list)
    remaining: List[ScheduleConflict] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            "conflicts_found": self.conflicts_found,
            "reassigned": self.reassigned,
            "remaining": [c.to_dict() for c in self.remaining],
            "errors": self.errors,
        }


class ConflictDetector:
    def __init__(self, db: Session, allocator: SlotAllocator = None):
        self.db = db
        self.allocator = allocator or SlotAllocator(db)

    def detect(self) -> List[ScheduleConflict]:
        groups = OrderedDict()
        for tenant, assignment in scheduled_tenants(self.db):
            for key in assignment.keys:
                groups.setdefault(key, []).append(tenant.id)

        return [
            ScheduleConflict(Weekday(day), TimeSlot(slot), ids)
            for (day, slot), ids in sorted(groups.items())
            if len(ids) > 1
        ]

    def resolve_all(self) -> ResolutionReport:
        """Keep the earliest tenant of each conflict and reassign the others once."""
        conflicts = self.detect()
        report = ResolutionReport(conflicts_found=len(conflicts))
        handled = set()

        for conflict in conflicts:
            keep, *others = conflict.tenant_ids
            for tenant_id in others:
                if tenant_id in handled or tenant_id == keep:
                    continue
                handled.add(tenant_id)
                try:
                    before = self.allocator.get_tenant(tenant_id)
                    previous = (before.schedule_day_pair, before.schedule_time_slot)
                    assignment = self.allocator.reassign(tenant_id)
                except Exception as e:
                    self.db.rollback()
                    logger.error("Conflict reassignment failed", exc_info=True,
                                 extra={"component": "conflicts", "tenant_id": tenant_id})
                    report.errors.append({"tenant_id": tenant_id, "error": str(e)})
                    continue
                report.reassigned.append({
                    "tenant_id": tenant_id,
                    "kept": keep,
                    "from": {"day_pair": previous[0], "time_slot": previous[1]},
                    "to": assignment.to_dict(),
                })

        report.remaining = self.detect()
        logger.info("Resolved schedule conflicts", extra={
            "component": "conflicts",
            "conflicts_found": report.conflicts_found,
            "reassigned": len(report.reassigned),
            "remaining": len(report.remaining),
            "errors": len(report.errors),
        })
        if report.remaining:
            logger.warning("Conflicts remain after resolution",
                           extra={"component": "conflicts", "remaining": len(report.remaining)})
        return report
