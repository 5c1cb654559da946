"""
Tests for the pipeline boundary
"""

import json
from datetime import date, datetime

import httpx
import pytest

from autopublish.models import Job
from autopublish.scheduling.errors import ConfigurationError
from autopublish.scheduling.pipeline import HttpPipelineInvoker, execute_job
from autopublish.scheduling.states import JobStatus, transition
from autopublish.db import SessionLocal
from conftest import FakeInvoker


@pytest.fixture
def job_id(db, make_tenant):
    make_tenant("acme", templates=1, locations=1)
    job = Job(tenant_id="acme", template_id=1, location_id=1, rendered_text="Template 0 for City0",
              scheduled_date=date(2026, 10, 20), scheduled_at=datetime(2026, 10, 20, 13),
              status=JobStatus.SCHEDULED.value)
    db.add(job)
    db.commit()
    return job.id


def _status(db, job_id):
    db.expire_all()
    return db.get(Job, job_id)


class PublishThenRaise:
    """Settles the job and then reports an error anyway."""

    def run(self, job_id):
        with SessionLocal() as db:
            job = db.get(Job, job_id)
            transition(job, JobStatus.PUBLISHED)
            db.commit()
        raise RuntimeError("webhook timed out after publish")


def test_scheduled_job_moves_to_generating_before_run(db, job_id):
    seen = []

    class Recorder:
        def run(self, jid):
            with SessionLocal() as s:
                seen.append(s.get(Job, jid).status)

    result = execute_job(job_id, Recorder())
    assert result.success
    assert seen == [JobStatus.GENERATING.value]


def test_success(db, job_id, invoker):
    result = execute_job(job_id, invoker)
    assert result.success and result.error is None
    assert _status(db, job_id).status == JobStatus.PUBLISHED.value


def test_error_marks_failed(db, job_id):
    result = execute_job(job_id, FakeInvoker(error=ValueError("bad prompt")))
    assert not result.success
    assert result.error == "bad prompt"
    job = _status(db, job_id)
    assert job.status == JobStatus.FAILED.value
    assert job.last_error == "bad prompt"


def test_error_after_settlement_keeps_status(db, job_id):
    result = execute_job(job_id, PublishThenRaise())
    assert not result.success
    job = _status(db, job_id)
    assert job.status == JobStatus.PUBLISHED.value
    assert job.last_error == "webhook timed out after publish"


def test_missing_job(invoker):
    result = execute_job(12345, invoker)
    assert not result.success
    assert invoker.calls == []


@pytest.mark.parametrize("status", ["PUBLISHED", "REVIEW", "FAILED"])
def test_settled_job_not_rerun(db, job_id, invoker, status):
    job = db.get(Job, job_id)
    job.status = status
    db.commit()

    result = execute_job(job_id, invoker)

    assert not result.success
    assert result.error == f"job is {status}"
    assert invoker.calls == []
    assert _status(db, job_id).status == status


class TestHttpPipelineInvoker:
    def test_posts_job_id_with_bearer_token(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(202, json={"accepted": True})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        HttpPipelineInvoker("https://pipeline.example/run", "s3cret", client=client).run(42)

        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert requests[0].headers["Authorization"] == "Bearer s3cret"
        assert json.loads(requests[0].content) == {"job_id": 42}

    def test_http_error_raises(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        with pytest.raises(httpx.HTTPStatusError):
            HttpPipelineInvoker("https://pipeline.example/run", "", client=client).run(1)

    def test_unconfigured_url(self):
        with pytest.raises(ConfigurationError):
            HttpPipelineInvoker(url="").run(1)
