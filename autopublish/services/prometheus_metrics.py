"""
Prometheus metrics for the autopublish scheduler
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
import os

# Build info
BUILD_INFO = Gauge(
    'autopublish_build_info',
    'Build information',
    ['version', 'image_tag']
)

# Request counters
REQUESTS_TOTAL = Counter(
    'autopublish_requests_total',
    'Total number of requests',
    ['status_class', 'path_group']
)

# Job creation outcomes
JOBS_TOTAL = Counter(
    'autopublish_jobs_total',
    'Job creation attempts by outcome',
    ['outcome']  # created | existing
)

# Pipeline invocations
PIPELINE_RUNS_TOTAL = Counter(
    'autopublish_pipeline_runs_total',
    'Pipeline invocations by result',
    ['result']  # success | failure
)

PIPELINE_DURATION_SECONDS = Histogram(
    'autopublish_pipeline_duration_seconds',
    'Pipeline invocation wall time',
    buckets=[1, 5, 15, 30, 60, 120, 300, 600, 720]
)

# Scheduler batches
BATCH_RUNS_TOTAL = Counter(
    'autopublish_batch_runs_total',
    'Scheduler batch runs by action and status',
    ['action', 'status']
)

TENANT_OUTCOMES_TOTAL = Counter(
    'autopublish_tenant_outcomes_total',
    'Per-tenant outcomes inside scheduler batches',
    ['outcome']
)

# Recovery sweeps
RECOVERY_ACTIONS_TOTAL = Counter(
    'autopublish_recovery_actions_total',
    'Recovery sweep actions',
    ['action']  # retried | review | failed | asset_failed | embed_cleared | error
)

# Retry queue
RETRY_QUEUE_DEPTH = Gauge(
    'autopublish_retry_queue_depth',
    'Current number of jobs waiting in the retry queue'
)

RETRY_QUEUE_DROPS_TOTAL = Counter(
    'autopublish_retry_queue_drops_total',
    'Retry submissions rejected because the queue was full'
)


class PrometheusMetrics:
    """Service for managing Prometheus metrics."""

    def __init__(self):
        self._setup_build_info()

    def _setup_build_info(self):
        """Set up build information gauge."""
        BUILD_INFO.labels(
            version=os.getenv("APP_VERSION", "dev"),
            image_tag=os.getenv("IMAGE_TAG", "latest")
        ).set(1)

    def increment_requests(self, status_code: int, path: str = "/unknown"):
        """Increment request counter."""
        if 200 <= status_code < 300:
            status_class = "2xx"
        elif 400 <= status_code < 500:
            status_class = "4xx"
        elif 500 <= status_code < 600:
            status_class = "5xx"
        else:
            status_class = "other"

        if path.startswith("/v1/cron"):
            path_group = "cron"
        elif path.startswith("/v1/admin"):
            path_group = "admin"
        else:
            path_group = "other"

        REQUESTS_TOTAL.labels(status_class=status_class, path_group=path_group).inc()

    def increment_jobs(self, outcome: str, count: int = 1):
        JOBS_TOTAL.labels(outcome=outcome).inc(count)

    def observe_pipeline_run(self, success: bool, seconds: float):
        PIPELINE_RUNS_TOTAL.labels(result="success" if success else "failure").inc()
        PIPELINE_DURATION_SECONDS.observe(seconds)

    def increment_batch_runs(self, action: str, status: str):
        BATCH_RUNS_TOTAL.labels(action=action, status=status).inc()

    def increment_tenant_outcome(self, outcome: str):
        TENANT_OUTCOMES_TOTAL.labels(outcome=outcome).inc()

    def increment_recovery_action(self, action: str, count: int = 1):
        if count:
            RECOVERY_ACTIONS_TOTAL.labels(action=action).inc(count)

    def set_retry_queue_depth(self, depth: int):
        RETRY_QUEUE_DEPTH.set(depth)

    def increment_retry_queue_drops(self, count: int = 1):
        RETRY_QUEUE_DROPS_TOTAL.inc(count)

    def get_metrics(self) -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest()

    def get_content_type(self) -> str:
        """Get the content type for Prometheus metrics."""
        return CONTENT_TYPE_LATEST

# Global metrics instance
prometheus_metrics = PrometheusMetrics()
