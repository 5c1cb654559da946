"""
Slot allocation.

Every scheduled tenant occupies two (weekday, slot) keys, one per weekday of
its day-pair. The allocator keeps each weekday under MAX_TENANTS_PER_DAY and,
where it can, hands out keys nobody else holds.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from sqlalchemy.orm import Session

from autopublish import config
from autopublish.models import Tenant
from .errors import TenantNotFound
from .slots import DayPair, SlotAssignment, TimeSlot, Weekday, assignment_of, parse_slot

logger = logging.getLogger(__name__)


@dataclass
class SlotLoad:
    """Occupancy derived from the currently scheduled tenants."""
    per_day: Counter = field(default_factory=Counter)   # weekday -> tenants
    per_pair: Counter = field(default_factory=Counter)  # DayPair -> tenants
    per_key: Counter = field(default_factory=Counter)   # (weekday, slot) -> tenants
    per_pair_slot: Counter = field(default_factory=Counter)  # (DayPair, slot) -> tenants

    def add(self, pair: DayPair, slot: TimeSlot) -> None:
        self.per_pair[pair] += 1
        self.per_pair_slot[(pair, slot)] += 1
        for day in pair.days:
            self.per_day[day] += 1
            self.per_key[(int(day), int(slot))] += 1

    def collisions(self, pair: DayPair, slot: TimeSlot) -> int:
        return sum(self.per_key[(int(day), int(slot))] for day in pair.days)

    def pair_load(self, pair: DayPair) -> int:
        return sum(self.per_day[day] for day in pair.days)


def scheduled_tenants(db: Session, exclude_ids: Iterable[str] = ()) -> List[Tuple[Tenant, SlotAssignment]]:
    """
    Active auto-scheduled tenants holding a day-pair, in creation order.
    A tenant with a pair but no slot is counted at slot 0.
    """
    excluded = set(exclude_ids)
    rows = db.query(Tenant).filter(
        Tenant.is_active.is_(True),
        Tenant.auto_schedule_enabled.is_(True),
        Tenant.schedule_day_pair.isnot(None),
    ).order_by(Tenant.created_at, Tenant.id).all()

    result = []
    for tenant in rows:
        if tenant.id in excluded:
            continue
        pair = DayPair.parse(tenant.schedule_day_pair)
        if pair is None:
            logger.warning("Ignoring unknown day pair %r", tenant.schedule_day_pair,
                           extra={"component": "allocator", "tenant_id": tenant.id})
            continue
        slot = parse_slot(tenant.schedule_time_slot)
        if slot is None:
            slot = TimeSlot.SLOT_0
        result.append((tenant, SlotAssignment(pair, slot)))
    return result


def load_from(assignments: Iterable[SlotAssignment]) -> SlotLoad:
    load = SlotLoad()
    for a in assignments:
        load.add(a.day_pair, a.time_slot)
    return load


def choose_slot(load: SlotLoad, max_per_day: int, default_pair: DayPair) -> SlotAssignment:
    """Pick the best (day-pair, slot) for one more tenant given `load`."""
    available = [
        pair for pair in DayPair
        if all(load.per_day[day] < max_per_day for day in pair.days)
    ]
    # sorted() is stable so declaration order breaks ties
    ordered = sorted(available, key=load.pair_load)

    for pair in ordered:
        free = [s for s in pair.allowed_slots if load.collisions(pair, s) == 0]
        if free:
            slot = min(free, key=lambda s: (load.per_pair_slot[(pair, s)], int(s)))
            return SlotAssignment(pair, slot)

    candidates = ordered or [default_pair]
    best = None
    for rank, pair in enumerate(candidates):
        for slot in pair.allowed_slots:
            score = (load.collisions(pair, slot), rank, int(slot))
            if best is None or score < best[0]:
                best = (score, pair, slot)
    _, pair, slot = best
    return SlotAssignment(pair, slot, collides=load.collisions(pair, slot) > 0, overbooked=not available)


@dataclass
class CapacityReport:
    max_per_day: int
    per_day: Dict[str, int]
    per_pair: Dict[str, int]
    used_keys: int
    total_keys: int
    tenants: int

    @property
    def tenant_capacity(self) -> int:
        # each tenant takes two weekday places
        return self.max_per_day * len(self.per_day) // 2

    def to_dict(self):
        return {
            "max_per_day": self.max_per_day,
            "per_day": self.per_day,
            "per_pair": self.per_pair,
            "used_keys": self.used_keys,
            "total_keys": self.total_keys,
            "tenants": self.tenants,
            "tenant_capacity": self.tenant_capacity,
        }


class SlotAllocator:
    def __init__(self, db: Session):
        self.db = db

    def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFound(tenant_id)
        return tenant

    def find_best_slot(self, exclude_ids: Sequence[str] = ()) -> SlotAssignment:
        load = load_from(a for _, a in scheduled_tenants(self.db, exclude_ids))
        default_pair = DayPair.parse(config.DEFAULT_DAY_PAIR) or DayPair.TUE_THU
        return choose_slot(load, config.MAX_TENANTS_PER_DAY, default_pair)

    def _store(self, tenant: Tenant, assignment: SlotAssignment) -> None:
        tenant.schedule_day_pair = assignment.day_pair.name
        tenant.schedule_time_slot = int(assignment.time_slot)
        self.db.commit()

        log_extra = {"component": "allocator", "tenant_id": tenant.id, **assignment.to_dict()}
        if assignment.collides or assignment.overbooked:
            logger.warning("Assigned fallback slot %s", assignment.describe(), extra=log_extra)
        else:
            logger.info("Assigned slot %s", assignment.describe(), extra=log_extra)

    def assign(self, tenant_id: str) -> SlotAssignment:
        """Return the tenant's assignment, allocating one if it has none."""
        tenant = self.get_tenant(tenant_id)
        current = assignment_of(tenant)
        if current is not None:
            return current

        assignment = self.find_best_slot(exclude_ids=[tenant.id])
        self._store(tenant, assignment)
        return assignment

    def reassign(self, tenant_id: str) -> SlotAssignment:
        """Drop the tenant's current assignment and allocate a fresh one."""
        tenant = self.get_tenant(tenant_id)
        tenant.schedule_day_pair = None
        tenant.schedule_time_slot = None
        assignment = self.find_best_slot(exclude_ids=[tenant.id])
        self._store(tenant, assignment)
        return assignment

    def capacity(self) -> CapacityReport:
        rows = scheduled_tenants(self.db)
        load = load_from(a for _, a in rows)
        workdays = [d for d in Weekday if any(d in p.days for p in DayPair)]
        return CapacityReport(
            max_per_day=config.MAX_TENANTS_PER_DAY,
            per_day={d.name: load.per_day[d] for d in workdays},
            per_pair={p.name: load.per_pair[p] for p in DayPair},
            used_keys=sum(1 for n in load.per_key.values() if n),
            total_keys=len(workdays) * len(TimeSlot),
            tenants=len(rows),
        )
