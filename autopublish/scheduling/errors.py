"""
Scheduling error taxonomy
"""


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling core."""


class TenantNotFound(SchedulingError):
    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class JobNotFound(SchedulingError):
    def __init__(self, job_id: int):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class ConfigurationError(SchedulingError):
    """Tenant scheduling fields are missing or unusable."""


class NoCombinationAvailable(SchedulingError):
    """Tenant has no active template or no active location."""


class InvalidTransition(SchedulingError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Invalid job transition {current} -> {target}")
        self.current = current
        self.target = target


class RetryLimitExceeded(SchedulingError):
    pass


class RetryQueueFull(SchedulingError):
    """The retry dispatcher rejected a submission."""


class DuplicateLiveJob(SchedulingError):
    """Another live job already holds the tenant's day."""
