"""
Tenant onboarding helpers: tenants, their locations and templates
"""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from ..models import Location, Template, Tenant
from ..scheduling.allocator import SlotAllocator
from ..scheduling.errors import TenantNotFound

logger = logging.getLogger(__name__)


def create_tenant(
    db: Session,
    tenant_id: str,
    name: str,
    timezone: str = "America/Denver",
    auto_schedule_enabled: bool = True,
    assign_slot: bool = True
) -> Tenant:
    """Create a tenant and, for auto-scheduled tenants, allocate its slot"""
    tenant = Tenant(
        id=tenant_id,
        name=name,
        timezone=timezone,
        auto_schedule_enabled=auto_schedule_enabled
    )
    db.add(tenant)
    db.commit()
    logger.info("Tenant created", extra={"component": "tenants", "tenant_id": tenant_id})

    if auto_schedule_enabled and assign_slot:
        SlotAllocator(db).assign(tenant_id)
    return tenant


def add_location(
    db: Session,
    tenant_id: str,
    city: str,
    state: str,
    neighborhood: Optional[str] = None,
    is_headquarters: bool = False
) -> Location:
    """Add a location; a new headquarters demotes the previous one"""
    if db.get(Tenant, tenant_id) is None:
        raise TenantNotFound(tenant_id)

    if is_headquarters:
        db.query(Location).filter(
            Location.tenant_id == tenant_id,
            Location.is_headquarters.is_(True)
        ).update({Location.is_headquarters: False}, synchronize_session="fetch")
        # demotion must reach the partial unique index before the insert
        db.flush()

    location = Location(
        tenant_id=tenant_id,
        city=city,
        state=state,
        neighborhood=neighborhood,
        is_headquarters=is_headquarters
    )
    db.add(location)
    db.commit()
    return location


def add_template(db: Session, tenant_id: str, text: str, priority: int = 0) -> Template:
    if db.get(Tenant, tenant_id) is None:
        raise TenantNotFound(tenant_id)
    template = Template(tenant_id=tenant_id, text=text, priority=priority)
    db.add(template)
    db.commit()
    return template
