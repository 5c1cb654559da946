"""
Idempotent daily job creation.

At most one non-FAILED job exists per tenant per tenant-local calendar day.
The check-then-insert runs in one transaction with the tenant row locked, and
the partial unique index uq_jobs_tenant_day_live catches whatever slips past
the lock (SQLite has no row locks).
"""
import logging
from datetime import date, datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autopublish.models import Job, Tenant
from autopublish.services.prometheus_metrics import prometheus_metrics
from autopublish.time_utils import as_utc, resolve_zone, to_local, utcnow
from .errors import NoCombinationAvailable, TenantNotFound
from .rotation import CombinationSelector
from .states import JobStatus

logger = logging.getLogger(__name__)


class JobFactory:
    def __init__(self, db: Session, selector: CombinationSelector = None):
        self.db = db
        self.selector = selector or CombinationSelector(db)

    def _live_job(self, tenant_id: str, day: date) -> Optional[Job]:
        return self.db.query(Job).filter(
            Job.tenant_id == tenant_id,
            Job.scheduled_date == day,
            Job.status != JobStatus.FAILED.value,
        ).order_by(Job.id).first()

    def create_if_absent(self, tenant_id: str, now: Optional[datetime] = None) -> Tuple[Job, bool]:
        """
        Return (job, created). An existing live job for the tenant's local
        day is returned unchanged with created=False.

        Raises TenantNotFound and NoCombinationAvailable.
        """
        now = as_utc(now or utcnow())
        log_extra = {"component": "job_factory", "tenant_id": tenant_id}

        tenant = self.db.query(Tenant).filter(Tenant.id == tenant_id).with_for_update().one_or_none()
        if tenant is None:
            self.db.rollback()
            raise TenantNotFound(tenant_id)

        zone, _ = resolve_zone(tenant.timezone)
        local = to_local(now, zone)
        day = local.date()

        existing = self._live_job(tenant_id, day)
        if existing is not None:
            # nothing written; commit just releases the lock and keeps `existing` loaded
            self.db.commit()
            logger.info("Job already exists for %s", day.isoformat(), extra={**log_extra, "job_id": existing.id})
            prometheus_metrics.increment_jobs("existing")
            return existing, False

        combination = self.selector.next(tenant_id)
        if combination is None:
            self.db.rollback()
            raise NoCombinationAvailable(f"Tenant {tenant_id} has no active template or location")

        job = Job(
            tenant_id=tenant_id,
            template_id=combination.template.id,
            location_id=combination.location.id,
            rendered_text=combination.rendered,
            scheduled_date=day,
            scheduled_at=now,
            scheduled_time=f"{local.hour:02d}:00",
            status=JobStatus.GENERATING.value,
        )
        self.db.add(job)
        try:
            self.db.commit()
        except IntegrityError:
            # a concurrent trigger won the race for this day
            self.db.rollback()
            winner = self._live_job(tenant_id, day)
            if winner is None:
                raise
            logger.info("Concurrent job creation detected", extra={**log_extra, "job_id": winner.id})
            prometheus_metrics.increment_jobs("existing")
            return winner, False

        # rotation only advances once the job is durable
        self.selector.mark_used(combination.template, now)
        self.selector.mark_used(combination.location, now)
        tenant.last_scheduled_at = now
        self.db.commit()

        logger.info("Created job", extra={
            **log_extra,
            "job_id": job.id,
            "template_id": job.template_id,
            "location_id": job.location_id,
            "scheduled_date": day.isoformat(),
        })
        prometheus_metrics.increment_jobs("created")
        return job, True
