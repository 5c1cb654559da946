"""
Template and location rotation.

Each tenant has two independent least-recently-used rotations: one over its
active templates, one over its active locations. The "used at" timestamps on
the rows are the rotation cursor; RotationCursor models that cursor as a
value so the ordering rules can be exercised without a database.
"""
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Hashable, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from autopublish.models import Location, Template
from autopublish.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationEntry:
    key: Hashable
    last_used: Optional[datetime]
    # tie-break among equally due entries, ascending
    order: Tuple = ()


@dataclass(frozen=True)
class RotationCursor:
    entries: Tuple[RotationEntry, ...]

    def next(self) -> Optional[Hashable]:
        """Key of the next entry: never-used first by order, else least recently used."""
        if not self.entries:
            return None
        fresh = [e for e in self.entries if e.last_used is None]
        if fresh:
            return min(fresh, key=lambda e: e.order).key
        return min(self.entries, key=lambda e: (e.last_used, e.order)).key

    def advance(self, key: Hashable, at: datetime) -> "RotationCursor":
        """Cursor after `key` was used at `at`."""
        return RotationCursor(tuple(
            replace(e, last_used=at) if e.key == key else e for e in self.entries
        ))

    @property
    def never_used(self) -> int:
        return sum(1 for e in self.entries if e.last_used is None)

    @property
    def recycling(self) -> bool:
        return bool(self.entries) and self.never_used == 0


def template_cursor(templates: Sequence[Template]) -> RotationCursor:
    return RotationCursor(tuple(
        RotationEntry(t.id, t.used_at, (t.priority, t.id)) for t in templates
    ))


def location_cursor(locations: Sequence[Location]) -> RotationCursor:
    # headquarters first among equals, then creation order
    return RotationCursor(tuple(
        RotationEntry(loc.id, loc.last_used_at, (0 if loc.is_headquarters else 1, loc.id)) for loc in locations
    ))


@dataclass
class Combination:
    template: Template
    location: Location

    @property
    def rendered(self) -> str:
        return render(self.template.text, self.location)


_TOKEN = re.compile(r"\{(location|city|state|neighborhood)\}", re.IGNORECASE)


def _field(location: Any, name: str) -> Optional[str]:
    if isinstance(location, Mapping):
        return location.get(name)
    return getattr(location, name, None)


def render(text: str, location: Any) -> str:
    """
    Substitute {location}, {city}, {state} and {neighborhood} (any case) with
    values from `location`, a Location row or a mapping. Other tokens, and
    tokens whose value is missing, are left as they are.
    """
    city = _field(location, "city")
    state = _field(location, "state")
    neighborhood = _field(location, "neighborhood")

    if city and state:
        whole = f"{neighborhood}, {city}, {state}" if neighborhood else f"{city}, {state}"
    else:
        whole = None
    values = {
        "location": whole,
        "city": city,
        "state": state,
        "neighborhood": neighborhood or city,
    }

    def _sub(match):
        value = values[match.group(1).lower()]
        return value if value else match.group(0)

    return _TOKEN.sub(_sub, text)


class CombinationSelector:
    """Picks the next (template, location) pair for a tenant."""

    def __init__(self, db: Session):
        self.db = db

    def _active_templates(self, tenant_id: str):
        return self.db.query(Template).filter(
            Template.tenant_id == tenant_id, Template.is_active.is_(True)
        ).all()

    def _active_locations(self, tenant_id: str):
        return self.db.query(Location).filter(
            Location.tenant_id == tenant_id, Location.is_active.is_(True)
        ).all()

    def next(self, tenant_id: str) -> Optional[Combination]:
        templates = self._active_templates(tenant_id)
        locations = self._active_locations(tenant_id)
        if not templates or not locations:
            logger.info("No combination for tenant", extra={
                "component": "rotation",
                "tenant_id": tenant_id,
                "active_templates": len(templates),
                "active_locations": len(locations),
            })
            return None

        template_id = template_cursor(templates).next()
        location_id = location_cursor(locations).next()
        template = next(t for t in templates if t.id == template_id)
        location = next(loc for loc in locations if loc.id == location_id)
        return Combination(template, location)

    def mark_used(self, item, at: Optional[datetime] = None) -> None:
        """Advance the rotation cursor for a template or location row."""
        at = at or utcnow()
        if isinstance(item, Template):
            item.used_at = at
        elif isinstance(item, Location):
            item.last_used_at = at
        else:
            raise TypeError(f"Cannot mark {type(item).__name__} as used")
        item.used_count = (item.used_count or 0) + 1

    def rotation_status(self, tenant_id: str) -> dict:
        tc = template_cursor(self._active_templates(tenant_id))
        lc = location_cursor(self._active_locations(tenant_id))
        return {
            "templates": {
                "active": len(tc.entries),
                "never_used": tc.never_used,
                "recycling": tc.recycling,
                "next_id": tc.next(),
            },
            "locations": {
                "active": len(lc.entries),
                "never_used": lc.never_used,
                "recycling": lc.recycling,
                "next_id": lc.next(),
            },
        }
