"""
Boundary to the external generation/publishing pipeline.

The pipeline owns everything after job creation and moves the job to
PUBLISHED or REVIEW itself. The only signal the scheduler consumes is whether
run() returned or raised.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx
from sqlalchemy.orm import Session

from autopublish import config
from autopublish.db import SessionLocal
from autopublish.models import Job
from autopublish.services.prometheus_metrics import prometheus_metrics
from .errors import ConfigurationError
from .states import JobStatus, can_transition, transition

logger = logging.getLogger(__name__)


class PipelineInvoker(Protocol):
    def run(self, job_id: int) -> None:
        ...


class HttpPipelineInvoker:
    """POSTs the job id to PIPELINE_URL and waits for the pipeline to finish."""

    def __init__(self, url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        self.url = url if url is not None else config.PIPELINE_URL
        self.token = token if token is not None else config.PIPELINE_TOKEN
        self.timeout = timeout if timeout is not None else config.PIPELINE_TIMEOUT_SECONDS
        self._client = client

    def run(self, job_id: int) -> None:
        if not self.url:
            raise ConfigurationError("PIPELINE_URL is not configured")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(self.url, json={"job_id": job_id}, headers=headers)
            response.raise_for_status()
        finally:
            if self._client is None:
                client.close()


@dataclass
class ExecutionResult:
    job_id: int
    success: bool
    error: Optional[str] = None


def _record_failure(db: Session, job_id: int, message: str) -> None:
    job = db.get(Job, job_id)
    if job is None:
        return
    if can_transition(job.status, JobStatus.FAILED.value):
        transition(job, JobStatus.FAILED, error=message)
    else:
        # pipeline already settled the job; keep its status, record the error
        job.last_error = message
    db.commit()


def execute_job(job_id: int, invoker: PipelineInvoker,
                session_factory: Callable[[], Session] = SessionLocal) -> ExecutionResult:
    """
    Run the pipeline for one job. A raised error marks the job FAILED and is
    returned, never re-raised, so one tenant cannot stop a batch.
    """
    log_extra = {"component": "pipeline", "job_id": job_id}

    with session_factory() as db:
        job = db.get(Job, job_id)
        if job is None:
            logger.error("Job vanished before pipeline run", extra=log_extra)
            return ExecutionResult(job_id, False, "job not found")
        if job.status not in (JobStatus.SCHEDULED.value, JobStatus.GENERATING.value):
            logger.info("Job already settled; skipping pipeline run", extra={**log_extra, "status": job.status})
            return ExecutionResult(job_id, False, f"job is {job.status}")
        if job.status == JobStatus.SCHEDULED.value:
            transition(job, JobStatus.GENERATING)
            db.commit()

    started = time.monotonic()
    try:
        invoker.run(job_id)
    except Exception as e:
        elapsed = time.monotonic() - started
        message = str(e) or type(e).__name__
        logger.error("Pipeline run failed", exc_info=True, extra={**log_extra, "error": message})
        prometheus_metrics.observe_pipeline_run(False, elapsed)
        with session_factory() as db:
            _record_failure(db, job_id, message)
        return ExecutionResult(job_id, False, message)

    elapsed = time.monotonic() - started
    prometheus_metrics.observe_pipeline_run(True, elapsed)
    logger.info("Pipeline run finished", extra={**log_extra, "duration_s": round(elapsed, 3)})
    return ExecutionResult(job_id, True)
