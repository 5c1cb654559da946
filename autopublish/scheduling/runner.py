"""
Batch orchestration for the cron and force-run entry points.

Tenants are processed one at a time with a fixed delay between them to
throttle calls into the rate-limited publishing APIs downstream. Per-tenant
errors become outcomes; only a failure to build the tenant list aborts the
batch. Each batch appends exactly one audit row.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from autopublish import config
from autopublish.db import SessionLocal
from autopublish.models import Tenant
from autopublish.services.audit import record_run
from autopublish.services.prometheus_metrics import prometheus_metrics
from autopublish.time_utils import as_utc, utcnow
from .errors import NoCombinationAvailable, SchedulingError, TenantNotFound
from .jobs import JobFactory
from .pipeline import PipelineInvoker, execute_job
from .recovery import RecoveryScanner
from .trigger import TriggerEvaluator

logger = logging.getLogger(__name__)

CRON_PUBLISH = "cron_publish"
FORCE_RUN = "force_run"
CRON_RECOVER = "cron_recover"


@dataclass
class TenantOutcome:
    tenant_id: str
    outcome: str  # created | existing | skipped | failed | error
    job_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.outcome in ("failed", "error")

    def to_dict(self):
        data = {"tenant_id": self.tenant_id, "outcome": self.outcome}
        if self.job_id is not None:
            data["job_id"] = self.job_id
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class BatchResult:
    action: str
    status: str
    started_at: datetime
    duration_ms: int
    outcomes: List[TenantOutcome] = field(default_factory=list)

    def to_dict(self):
        counts = {}
        for o in self.outcomes:
            counts[o.outcome] = counts.get(o.outcome, 0) + 1
        return {
            "action": self.action,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "duration_ms": self.duration_ms,
            "processed": len(self.outcomes),
            "counts": counts,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class PublishRunner:
    def __init__(self, invoker: PipelineInvoker,
                 session_factory: Callable[[], Session] = SessionLocal,
                 sleep: Callable[[float], None] = time.sleep,
                 delay: Optional[float] = None):
        self.invoker = invoker
        self.session_factory = session_factory
        self.sleep = sleep
        self.delay = config.INTER_TENANT_DELAY_SECONDS if delay is None else delay

    def run_due(self, now: Optional[datetime] = None) -> BatchResult:
        """Scheduler tick: run every tenant whose local slot is now."""
        now = as_utc(now or utcnow())

        def select(db):
            return TriggerEvaluator(db).due_now(now)

        return self._run_batch(CRON_PUBLISH, select, now)

    def force_run(self, tenant_id: Optional[str] = None, now: Optional[datetime] = None) -> BatchResult:
        """Operator run for one tenant, or every eligible tenant, ignoring local time."""
        now = as_utc(now or utcnow())

        if tenant_id is not None:
            with self.session_factory() as db:
                if db.get(Tenant, tenant_id) is None:
                    raise TenantNotFound(tenant_id)

            def select(db):
                return [db.get(Tenant, tenant_id)]
        else:
            def select(db):
                return TriggerEvaluator(db).eligible()

        return self._run_batch(FORCE_RUN, select, now)

    def _run_batch(self, action: str, select: Callable[[Session], List[Tenant]], now: datetime) -> BatchResult:
        started_at = utcnow()
        t0 = time.monotonic()
        try:
            with self.session_factory() as db:
                tenant_ids = [t.id for t in select(db)]
        except Exception as e:
            logger.exception("Batch setup failed", extra={"component": "runner", "action": action})
            record_run(action, "FAILED", started_at, result={"outcomes": []}, error_message=str(e))
            prometheus_metrics.increment_batch_runs(action, "FAILED")
            raise

        logger.info("Batch started", extra={"component": "runner", "action": action, "tenants": len(tenant_ids)})
        outcomes = []
        for i, tenant_id in enumerate(tenant_ids):
            if i and self.delay > 0:
                self.sleep(self.delay)
            outcome = self._process_tenant(tenant_id, now)
            prometheus_metrics.increment_tenant_outcome(outcome.outcome)
            outcomes.append(outcome)

        status = "PARTIAL" if any(o.is_error for o in outcomes) else "SUCCESS"
        result = BatchResult(action, status, started_at, int((time.monotonic() - t0) * 1000), outcomes)
        record_run(action, status, started_at, result=result.to_dict())
        prometheus_metrics.increment_batch_runs(action, status)
        logger.info("Batch finished", extra={
            "component": "runner", "action": action, "status": status, "duration_ms": result.duration_ms,
        })
        return result

    def _process_tenant(self, tenant_id: str, now: datetime) -> TenantOutcome:
        log_extra = {"component": "runner", "tenant_id": tenant_id}
        try:
            with self.session_factory() as db:
                job, created = JobFactory(db).create_if_absent(tenant_id, now)
                job_id = job.id
        except NoCombinationAvailable as e:
            logger.info("Skipping tenant: %s", e, extra=log_extra)
            return TenantOutcome(tenant_id, "skipped", reason=str(e))
        except SchedulingError as e:
            logger.warning("Tenant could not be scheduled: %s", e, extra=log_extra)
            return TenantOutcome(tenant_id, "error", reason=str(e))
        except Exception as e:
            logger.exception("Job creation failed", extra=log_extra)
            return TenantOutcome(tenant_id, "error", reason=str(e))

        if not created:
            return TenantOutcome(tenant_id, "existing", job_id=job_id)

        execution = execute_job(job_id, self.invoker, self.session_factory)
        if not execution.success:
            return TenantOutcome(tenant_id, "failed", job_id=job_id, reason=execution.error)
        return TenantOutcome(tenant_id, "created", job_id=job_id)


def run_recovery(dispatcher, now: Optional[datetime] = None,
                 session_factory: Callable[[], Session] = SessionLocal) -> dict:
    """Recovery entry point: one sweep, one audit row."""
    started_at = utcnow()
    try:
        with session_factory() as db:
            report = RecoveryScanner(db, dispatcher).sweep(now)
    except Exception as e:
        logger.exception("Recovery sweep failed", extra={"component": "runner", "action": CRON_RECOVER})
        record_run(CRON_RECOVER, "FAILED", started_at, error_message=str(e))
        prometheus_metrics.increment_batch_runs(CRON_RECOVER, "FAILED")
        raise

    record_run(CRON_RECOVER, report.status, started_at, result=report.to_dict())
    prometheus_metrics.increment_batch_runs(CRON_RECOVER, report.status)
    return {"action": CRON_RECOVER, "status": report.status, **report.to_dict()}
