"""
Job status state machine
"""
from enum import Enum
from typing import Optional

from autopublish.time_utils import utcnow
from .errors import InvalidTransition


class JobStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    GENERATING = "GENERATING"
    PUBLISHED = "PUBLISHED"
    REVIEW = "REVIEW"
    FAILED = "FAILED"


class AssetStatus(str, Enum):
    PROCESSING = "PROCESSING"
    READY = "READY"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


class AssetKind(str, Enum):
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"


TRANSITIONS = {
    JobStatus.SCHEDULED: {JobStatus.GENERATING, JobStatus.FAILED},
    JobStatus.GENERATING: {JobStatus.PUBLISHED, JobStatus.REVIEW, JobStatus.FAILED, JobStatus.SCHEDULED},
    JobStatus.FAILED: {JobStatus.SCHEDULED},
    JobStatus.PUBLISHED: set(),
    JobStatus.REVIEW: set(),
}


def can_transition(current: str, target: str) -> bool:
    try:
        return JobStatus(target) in TRANSITIONS[JobStatus(current)]
    except ValueError:
        return False


def transition(job, target: JobStatus, error: Optional[str] = None) -> None:
    """Move a job to `target`, raising InvalidTransition for illegal moves."""
    if not can_transition(job.status, target.value):
        raise InvalidTransition(job.status, target.value)
    job.status = target.value
    if error is not None:
        job.last_error = error
    if target is JobStatus.PUBLISHED:
        job.published_at = utcnow()
