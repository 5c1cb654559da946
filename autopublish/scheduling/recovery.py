"""
Recovery of work abandoned mid-flight.

A sweep looks at three bounded batches: jobs stuck in SCHEDULED or GENERATING,
audio/video assets stuck in PROCESSING, and jobs that claim an embedded audio asset which
has no public URL. Each item is settled in its own transaction; a failure on
one item is recorded and the sweep moves on.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autopublish import config
from autopublish.models import Asset, Job
from autopublish.services.prometheus_metrics import prometheus_metrics
from autopublish.time_utils import as_utc, utcnow
from .errors import DuplicateLiveJob, InvalidTransition, JobNotFound, RetryLimitExceeded, RetryQueueFull
from .states import AssetKind, AssetStatus, JobStatus, transition

logger = logging.getLogger(__name__)

MANUAL_INTERVENTION = "Retry limit reached; manual intervention required"


class Dispatcher(Protocol):
    def submit(self, job_id: int) -> bool:
        ...


@dataclass
class RecoveryReport:
    checked_jobs: int = 0
    retried: List[int] = field(default_factory=list)
    review: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    assets_failed: List[int] = field(default_factory=list)
    embeds_cleared: List[int] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "PARTIAL" if self.errors else "SUCCESS"

    def to_dict(self):
        return {
            "checked_jobs": self.checked_jobs,
            "retried": self.retried,
            "review": self.review,
            "failed": self.failed,
            "assets_failed": self.assets_failed,
            "embeds_cleared": self.embeds_cleared,
            "errors": self.errors,
        }


class RecoveryScanner:
    def __init__(self, db: Session, dispatcher: Dispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def _has_artifacts(self, job: Job) -> bool:
        if not job.primary_text:
            return False
        ready_images = self.db.query(Asset).filter(
            Asset.job_id == job.id,
            Asset.kind == AssetKind.IMAGE.value,
            Asset.status.in_([AssetStatus.READY.value, AssetStatus.PUBLISHED.value]),
        ).count()
        return ready_images >= config.RECOVERY_MIN_ASSETS

    def _submit(self, job: Job, origin: str) -> bool:
        """Hand a SCHEDULED job to the dispatcher, undoing the retry if it is rejected."""
        if self.dispatcher.submit(job.id):
            return True
        error = "Retry queue full; will retry on a later sweep"
        if origin == JobStatus.GENERATING.value:
            transition(job, JobStatus.GENERATING, error=error)
        else:
            job.last_error = error
        job.retry_count -= 1
        self.db.commit()
        return False

    def _recover_job(self, job: Job, report: RecoveryReport) -> None:
        log_extra = {"component": "recovery", "job_id": job.id, "tenant_id": job.tenant_id}

        origin = job.status
        if origin == JobStatus.GENERATING.value and self._has_artifacts(job):
            transition(job, JobStatus.REVIEW, error="Recovered after stall: content generated, publishing unconfirmed")
            self.db.commit()
            report.review.append(job.id)
            logger.info("Stuck job moved to review", extra=log_extra)
            return

        if job.retry_count < config.MAX_RETRIES:
            job.retry_count += 1
            if origin != JobStatus.SCHEDULED.value:
                transition(job, JobStatus.SCHEDULED)
            self.db.commit()
            if self._submit(job, origin):
                report.retried.append(job.id)
                logger.info("Stuck job queued for retry", extra={**log_extra, "retry_count": job.retry_count})
            else:
                report.errors.append({"job_id": job.id, "error": "retry queue full"})
            return

        transition(job, JobStatus.FAILED, error=MANUAL_INTERVENTION)
        self.db.commit()
        report.failed.append(job.id)
        logger.warning("Stuck job failed permanently", extra={**log_extra, "retry_count": job.retry_count})

    def _fail_asset(self, asset: Asset, report: RecoveryReport) -> None:
        asset.status = AssetStatus.FAILED.value
        job = asset.job
        if job is not None:
            job.last_error = (
                f"{asset.kind} asset {asset.id} stuck in PROCESSING for more than "
                f"{config.STALE_ASSET_HOURS:g}h"
            )
        self.db.commit()
        report.assets_failed.append(asset.id)
        logger.info("Stuck asset marked failed", extra={
            "component": "recovery", "asset_id": asset.id, "job_id": asset.job_id, "kind": asset.kind,
        })

    def _clear_embed(self, job: Job, report: RecoveryReport) -> None:
        job.audio_embedded = False
        job.audio_embedded_at = None
        self.db.commit()
        report.embeds_cleared.append(job.id)
        logger.info("Cleared audio embed flag", extra={"component": "recovery", "job_id": job.id})

    def _each(self, items, handler, report: RecoveryReport, kind: str) -> None:
        for item in items:
            try:
                handler(item, report)
            except Exception as e:
                self.db.rollback()
                logger.error("Recovery step failed", exc_info=True,
                             extra={"component": "recovery", "kind": kind, "id": item.id})
                report.errors.append({kind: item.id, "error": str(e)})

    def sweep(self, now: Optional[datetime] = None) -> RecoveryReport:
        now = as_utc(now or utcnow())
        limit = config.RECOVERY_BATCH_SIZE
        report = RecoveryReport()

        stuck_jobs = self.db.query(Job).filter(
            Job.status.in_([JobStatus.SCHEDULED.value, JobStatus.GENERATING.value]),
            Job.updated_at < now - timedelta(hours=config.STALE_JOB_HOURS),
        ).order_by(Job.updated_at).limit(limit).all()
        report.checked_jobs = len(stuck_jobs)
        self._each(stuck_jobs, self._recover_job, report, "job_id")

        stuck_assets = self.db.query(Asset).filter(
            Asset.kind.in_([AssetKind.AUDIO.value, AssetKind.VIDEO.value]),
            Asset.status == AssetStatus.PROCESSING.value,
            Asset.updated_at < now - timedelta(hours=config.STALE_ASSET_HOURS),
        ).order_by(Asset.updated_at).limit(limit).all()
        self._each(stuck_assets, self._fail_asset, report, "asset_id")

        published_audio = exists().where(and_(
            Asset.job_id == Job.id,
            Asset.kind == AssetKind.AUDIO.value,
            Asset.public_url.isnot(None),
        ))
        broken_embeds = self.db.query(Job).filter(
            Job.audio_embedded.is_(True), ~published_audio,
        ).order_by(Job.id).limit(limit).all()
        self._each(broken_embeds, self._clear_embed, report, "job_id")

        for action, items in (("retried", report.retried), ("review", report.review),
                              ("failed", report.failed), ("asset_failed", report.assets_failed),
                              ("embed_cleared", report.embeds_cleared), ("error", report.errors)):
            prometheus_metrics.increment_recovery_action(action, len(items))
        logger.info("Recovery sweep complete", extra={"component": "recovery", **{
            k: len(v) if isinstance(v, list) else v for k, v in report.to_dict().items()
        }})
        return report

    def retry_failed(self, job_id: int) -> Job:
        """Operator retry of a FAILED job, bounded by MAX_RETRIES."""
        job = self.db.get(Job, job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status != JobStatus.FAILED.value:
            raise InvalidTransition(job.status, JobStatus.SCHEDULED.value)
        if job.retry_count >= config.MAX_RETRIES:
            raise RetryLimitExceeded(f"Job {job_id} already retried {job.retry_count} times")

        job.retry_count += 1
        transition(job, JobStatus.SCHEDULED)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateLiveJob(f"Tenant {job.tenant_id} already has a live job for {job.scheduled_date}")

        if not self.dispatcher.submit(job.id):
            job.retry_count -= 1
            transition(job, JobStatus.FAILED)
            self.db.commit()
            raise RetryQueueFull(f"Retry queue full; job {job_id} left FAILED")

        logger.info("Failed job queued for retry", extra={
            "component": "recovery", "job_id": job.id, "retry_count": job.retry_count,
        })
        return job
