#!/usr/bin/env python3
"""
Seed script to create a demo tenant with templates and a headquarters location
"""
import os

from autopublish.db import init_db, session_scope
from autopublish.models import Tenant
from autopublish.scheduling.slots import assignment_of
from autopublish.services.tenants import add_location, add_template, create_tenant

DEMO_TEMPLATES = (
    "Best {service} in {city}, {state}?",
    "What {location} homeowners ask before hiring a roofer",
    "Storm season checklist for {neighborhood}",
)

if __name__ == "__main__":
    if os.getenv("SEED_DEMO_TENANT", "1") in ("0", "false", "False"):
        print("Seeding disabled via SEED_DEMO_TENANT=0")
        raise SystemExit(0)

    init_db()
    with session_scope() as db:
        tenant = db.get(Tenant, "demo")
        if tenant:
            print("✓ Demo tenant exists")
        else:
            print("Creating demo tenant...")
            tenant = create_tenant(db, "demo", "Demo Roofing Co", timezone="America/Denver")
            add_location(db, "demo", "Denver", "CO", neighborhood="Capitol Hill", is_headquarters=True)
            add_location(db, "demo", "Aurora", "CO")
            for priority, text in enumerate(DEMO_TEMPLATES):
                add_template(db, "demo", text, priority=priority)
            print("✓ Demo tenant created")

        assignment = assignment_of(tenant)
        print(f"Slot: {assignment.describe() if assignment else 'unassigned'}")
