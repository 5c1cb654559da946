"""
Tests for the recovery sweep and operator retries
"""

from datetime import date, datetime, timedelta

import pytest

from autopublish import config
from autopublish.models import Asset, Job, Location, Template
from autopublish.scheduling.errors import (
    DuplicateLiveJob, InvalidTransition, JobNotFound, RetryLimitExceeded, RetryQueueFull,
)
from autopublish.scheduling.recovery import MANUAL_INTERVENTION, RecoveryScanner
from autopublish.scheduling.states import JobStatus
from autopublish.time_utils import utcnow
from conftest import FakeDispatcher


@pytest.fixture
def tenant(make_tenant):
    return make_tenant("acme", day_pair="TUE_THU", time_slot=5, templates=1, locations=1)


@pytest.fixture
def make_job(db, tenant):
    def _make(status="GENERATING", day=date(2026, 10, 20), retry_count=0, stale_hours=3,
              primary_text=None, audio_embedded=False):
        job = Job(
            tenant_id=tenant.id,
            template_id=db.query(Template.id).scalar(),
            location_id=db.query(Location.id).scalar(),
            rendered_text="Template 0 for City0",
            scheduled_date=day,
            scheduled_at=datetime.combine(day, datetime.min.time()),
            status=status,
            retry_count=retry_count,
            primary_text=primary_text,
            audio_embedded=audio_embedded,
            updated_at=utcnow() - timedelta(hours=stale_hours),
        )
        db.add(job)
        db.commit()
        return job
    return _make


def _reload(db, model, pk):
    db.expire_all()
    return db.get(model, pk)


class TestStuckJobs:
    def test_retry_then_fail_at_limit(self, db, make_job, dispatcher):
        job = make_job(retry_count=2)
        report = RecoveryScanner(db, dispatcher).sweep()

        job = _reload(db, Job, job.id)
        assert report.retried == [job.id]
        assert dispatcher.submitted == [job.id]
        assert job.status == JobStatus.SCHEDULED.value
        assert job.retry_count == 3

        # the retried run stalled again
        job.status = JobStatus.GENERATING.value
        job.updated_at = utcnow() - timedelta(hours=3)
        db.commit()

        report = RecoveryScanner(db, dispatcher).sweep()
        job = _reload(db, Job, job.id)
        assert report.failed == [job.id]
        assert job.status == JobStatus.FAILED.value
        assert job.last_error == MANUAL_INTERVENTION
        assert dispatcher.submitted == [job.id]

    def test_generated_content_goes_to_review(self, db, make_job, dispatcher):
        job = make_job(primary_text="Roof tips for Denver")
        db.add(Asset(job_id=job.id, kind="IMAGE", status="READY"))
        db.commit()

        report = RecoveryScanner(db, dispatcher).sweep()

        assert report.review == [job.id]
        assert _reload(db, Job, job.id).status == JobStatus.REVIEW.value
        assert dispatcher.submitted == []

    def test_text_without_image_is_retried(self, db, make_job, dispatcher):
        job = make_job(primary_text="Roof tips for Denver")
        report = RecoveryScanner(db, dispatcher).sweep()
        assert report.retried == [job.id]

    def test_fresh_job_untouched(self, db, make_job, dispatcher):
        job = make_job(stale_hours=0)
        report = RecoveryScanner(db, dispatcher).sweep()
        assert report.checked_jobs == 0
        assert _reload(db, Job, job.id).status == JobStatus.GENERATING.value

    def test_rejected_dispatch_leaves_job_for_next_sweep(self, db, make_job):
        job = make_job(retry_count=1)
        report = RecoveryScanner(db, FakeDispatcher(accept=False)).sweep()

        job = _reload(db, Job, job.id)
        assert job.status == JobStatus.GENERATING.value
        assert job.retry_count == 1
        assert "queue full" in job.last_error
        assert report.retried == []
        assert report.status == "PARTIAL"

    def test_stale_scheduled_job_resubmitted(self, db, make_job, dispatcher):
        job = make_job(status="SCHEDULED", stale_hours=48)
        report = RecoveryScanner(db, dispatcher).sweep()

        job = _reload(db, Job, job.id)
        assert report.checked_jobs == 1
        assert report.retried == [job.id]
        assert dispatcher.submitted == [job.id]
        assert job.status == JobStatus.SCHEDULED.value
        assert job.retry_count == 1

    def test_stale_scheduled_job_fails_at_limit(self, db, make_job, dispatcher):
        job = make_job(status="SCHEDULED", stale_hours=48, retry_count=config.MAX_RETRIES)
        report = RecoveryScanner(db, dispatcher).sweep()

        job = _reload(db, Job, job.id)
        assert report.failed == [job.id]
        assert job.status == JobStatus.FAILED.value
        assert job.last_error == MANUAL_INTERVENTION
        assert dispatcher.submitted == []

    def test_stale_scheduled_job_with_content_is_not_reviewed(self, db, make_job, dispatcher):
        job = make_job(status="SCHEDULED", stale_hours=48, primary_text="Roof tips for Denver")
        db.add(Asset(job_id=job.id, kind="IMAGE", status="READY"))
        db.commit()

        report = RecoveryScanner(db, dispatcher).sweep()
        assert report.review == []
        assert report.retried == [job.id]

    def test_fresh_scheduled_job_untouched(self, db, make_job, dispatcher):
        job = make_job(status="SCHEDULED", stale_hours=0)
        report = RecoveryScanner(db, dispatcher).sweep()
        assert report.checked_jobs == 0
        assert dispatcher.submitted == []
        assert _reload(db, Job, job.id).retry_count == 0

    def test_rejected_resubmit_keeps_job_scheduled(self, db, make_job):
        job = make_job(status="SCHEDULED", stale_hours=48, retry_count=1)
        report = RecoveryScanner(db, FakeDispatcher(accept=False)).sweep()

        job = _reload(db, Job, job.id)
        assert job.status == JobStatus.SCHEDULED.value
        assert job.retry_count == 1
        assert "queue full" in job.last_error
        assert report.errors == [{"job_id": job.id, "error": "retry queue full"}]

    def test_batch_is_bounded(self, db, make_job, dispatcher, monkeypatch):
        monkeypatch.setattr(config, "RECOVERY_BATCH_SIZE", 2)
        for day in (19, 20, 21):
            make_job(day=date(2026, 10, day))

        report = RecoveryScanner(db, dispatcher).sweep()
        assert report.checked_jobs == 2
        assert len(dispatcher.submitted) == 2

    def test_one_bad_item_does_not_stop_the_sweep(self, db, make_job, dispatcher, monkeypatch):
        bad = make_job(day=date(2026, 10, 19))
        good = make_job(day=date(2026, 10, 20))
        scanner = RecoveryScanner(db, dispatcher)
        real_check = scanner._has_artifacts

        def flaky_check(job):
            if job.id == bad.id:
                raise RuntimeError("asset lookup failed")
            return real_check(job)

        monkeypatch.setattr(scanner, "_has_artifacts", flaky_check)
        report = scanner.sweep()

        assert report.retried == [good.id]
        assert report.errors == [{"job_id": bad.id, "error": "asset lookup failed"}]
        assert _reload(db, Job, bad.id).status == JobStatus.GENERATING.value


class TestStuckAssets:
    def test_stale_audio_asset_failed(self, db, make_job, dispatcher):
        job = make_job(status="PUBLISHED", stale_hours=0)
        asset = Asset(job_id=job.id, kind="AUDIO", status="PROCESSING",
                      updated_at=utcnow() - timedelta(hours=5))
        image = Asset(job_id=job.id, kind="IMAGE", status="PROCESSING",
                      updated_at=utcnow() - timedelta(hours=5))
        db.add_all([asset, image])
        db.commit()

        report = RecoveryScanner(db, dispatcher).sweep()

        assert report.assets_failed == [asset.id]
        assert _reload(db, Asset, asset.id).status == "FAILED"
        assert _reload(db, Asset, image.id).status == "PROCESSING"
        job = _reload(db, Job, job.id)
        assert job.status == JobStatus.PUBLISHED.value
        assert "AUDIO asset" in job.last_error

    def test_recent_video_asset_kept(self, db, make_job, dispatcher):
        job = make_job(status="PUBLISHED", stale_hours=0)
        db.add(Asset(job_id=job.id, kind="VIDEO", status="PROCESSING"))
        db.commit()
        assert RecoveryScanner(db, dispatcher).sweep().assets_failed == []


class TestEmbedFlag:
    def test_flag_cleared_without_published_audio(self, db, make_job, dispatcher):
        broken = make_job(status="PUBLISHED", stale_hours=0, audio_embedded=True, day=date(2026, 10, 19))
        fine = make_job(status="PUBLISHED", stale_hours=0, audio_embedded=True, day=date(2026, 10, 20))
        db.add(Asset(job_id=fine.id, kind="AUDIO", status="PUBLISHED", public_url="https://cdn.example/a.mp3"))
        db.commit()

        report = RecoveryScanner(db, dispatcher).sweep()

        assert report.embeds_cleared == [broken.id]
        assert _reload(db, Job, broken.id).audio_embedded is False
        assert _reload(db, Job, fine.id).audio_embedded is True


class TestRetryFailed:
    def test_retry_schedules_and_dispatches(self, db, make_job, dispatcher):
        job = make_job(status="FAILED")
        retried = RecoveryScanner(db, dispatcher).retry_failed(job.id)
        assert retried.status == JobStatus.SCHEDULED.value
        assert retried.retry_count == 1
        assert dispatcher.submitted == [job.id]

    def test_unknown_job(self, db, dispatcher):
        with pytest.raises(JobNotFound):
            RecoveryScanner(db, dispatcher).retry_failed(999)

    def test_only_failed_jobs(self, db, make_job, dispatcher):
        job = make_job(status="PUBLISHED")
        with pytest.raises(InvalidTransition):
            RecoveryScanner(db, dispatcher).retry_failed(job.id)

    def test_retry_limit(self, db, make_job, dispatcher):
        job = make_job(status="FAILED", retry_count=config.MAX_RETRIES)
        with pytest.raises(RetryLimitExceeded):
            RecoveryScanner(db, dispatcher).retry_failed(job.id)
        assert dispatcher.submitted == []

    def test_day_already_has_live_job(self, db, make_job, dispatcher):
        failed = make_job(status="FAILED")
        make_job(status="PUBLISHED")
        with pytest.raises(DuplicateLiveJob):
            RecoveryScanner(db, dispatcher).retry_failed(failed.id)
        assert _reload(db, Job, failed.id).status == JobStatus.FAILED.value

    def test_rejected_dispatch_reverts(self, db, make_job):
        job = make_job(status="FAILED")
        with pytest.raises(RetryQueueFull):
            RecoveryScanner(db, FakeDispatcher(accept=False)).retry_failed(job.id)
        job = _reload(db, Job, job.id)
        assert job.status == JobStatus.FAILED.value
        assert job.retry_count == 0
