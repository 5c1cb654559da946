# tests/conftest.py
import os

# Configure before anything imports autopublish.config / autopublish.db
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["INTER_TENANT_DELAY_SECONDS"] = "0"
os.environ["LOG_FORMAT"] = "text"

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from autopublish.db import Base, SessionLocal, engine
from autopublish.models import Job, Location, Template, Tenant
from autopublish.scheduling.states import JobStatus, transition

DENVER = ZoneInfo("America/Denver")


class FakeInvoker:
    """Stands in for the external pipeline: publishes the job, or raises."""

    def __init__(self, error: Exception = None, fail_for=()):
        self.error = error
        self.fail_for = set(fail_for)
        self.calls = []

    def run(self, job_id: int) -> None:
        self.calls.append(job_id)
        with SessionLocal() as db:
            job = db.get(Job, job_id)
            if self.error is not None or job.tenant_id in self.fail_for:
                raise self.error or RuntimeError(f"pipeline exploded for {job.tenant_id}")
            job.primary_text = f"generated for {job.rendered_text}"
            transition(job, JobStatus.PUBLISHED)
            db.commit()


class FakeDispatcher:
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.submitted = []

    def submit(self, job_id: int) -> bool:
        if self.accept:
            self.submitted.append(job_id)
        return self.accept


@pytest.fixture(autouse=True)
def reset_database():
    import autopublish.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_tenant(db):
    """Create a tenant with an explicit creation order and optional slot."""
    counter = {"n": 0}

    def _make(tenant_id=None, day_pair=None, time_slot=None, timezone="America/Denver",
              auto_schedule_enabled=True, is_active=True, templates=0, locations=0):
        counter["n"] += 1
        tenant = Tenant(
            id=tenant_id or f"t{counter['n']:02d}",
            name=f"Tenant {counter['n']}",
            timezone=timezone,
            auto_schedule_enabled=auto_schedule_enabled,
            is_active=is_active,
            schedule_day_pair=day_pair,
            schedule_time_slot=time_slot,
            created_at=datetime(2026, 1, 1) + timedelta(minutes=counter["n"]),
        )
        db.add(tenant)
        for i in range(templates):
            db.add(Template(tenant_id=tenant.id, text=f"Template {i} for {{city}}", priority=i))
        for i in range(locations):
            db.add(Location(tenant_id=tenant.id, city=f"City{i}", state="CO", is_headquarters=(i == 0)))
        db.commit()
        return tenant

    return _make


@pytest.fixture
def invoker():
    return FakeInvoker()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def client(invoker, dispatcher):
    from fastapi.testclient import TestClient
    from autopublish.api.deps import get_dispatcher, get_invoker
    from autopublish.main import app

    app.dependency_overrides[get_invoker] = lambda: invoker
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    try:
        # no context manager: the lifespan (worker threads) stays off in tests
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def cron_headers():
    return {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def admin_headers():
    return {"Authorization": "Bearer test-admin-key"}
