"""
Retry dispatch for recovered jobs.
Bounded queue with backpressure and a small thread worker pool, so a recovery
sweep can hand jobs off without waiting for the pipeline to finish.
"""

import logging
import queue
import threading
import time
from typing import Any, Dict, List, Optional

from .config import RETRY_QUEUE_MAX_DEPTH, RETRY_WORKER_POOL_SIZE
from .scheduling.pipeline import HttpPipelineInvoker, PipelineInvoker, execute_job
from .services.prometheus_metrics import prometheus_metrics

logger = logging.getLogger("queue_manager")

_STOP = object()
WORKER_POLL_SECONDS = 0.5


class RetryDispatcher:
    """Owns the retry queue and the workers that drain it"""

    def __init__(self, invoker: Optional[PipelineInvoker] = None,
                 max_depth: int = RETRY_QUEUE_MAX_DEPTH, worker_pool_size: int = RETRY_WORKER_POOL_SIZE):
        self.invoker = invoker or HttpPipelineInvoker()
        self.max_depth = max_depth
        self.worker_pool_size = worker_pool_size
        self.queue: "queue.Queue" = queue.Queue(maxsize=max_depth)
        self.workers: List[threading.Thread] = []
        self._drop_count = 0
        self._last_drop_log = 0.0
        self._stopping = threading.Event()

    def start_workers(self):
        """Start the worker pool"""
        if self.workers:
            return
        self._stopping.clear()
        for i in range(self.worker_pool_size):
            worker = threading.Thread(target=self._worker_loop, args=(i,), name=f"retry-worker-{i}", daemon=True)
            worker.start()
            self.workers.append(worker)

        logger.info("Retry worker pool started", extra={
            "component": "queue_manager",
            "worker_count": self.worker_pool_size,
            "max_depth": self.max_depth
        })

    def stop_workers(self, timeout: float = 5.0):
        """Stop all workers within timeout; jobs still queued stay SCHEDULED in the database"""
        deadline = time.monotonic() + timeout
        self._stopping.set()
        for _ in self.workers:
            try:
                self.queue.put_nowait(_STOP)
            except queue.Full:
                # idle workers notice the stop flag on their next poll
                break
        for worker in self.workers:
            worker.join(max(0.0, deadline - time.monotonic()))

        busy = [worker.name for worker in self.workers if worker.is_alive()]
        if busy:
            logger.warning("Retry workers still busy at shutdown", extra={
                "component": "queue_manager",
                "workers": busy,
                "queue_depth": self.queue.qsize()
            })
        self.workers.clear()
        logger.info("Retry worker pool stopped", extra={"component": "queue_manager"})

    def submit(self, job_id: int) -> bool:
        """
        Queue a job for a pipeline run.
        Returns True if queued, False if the queue is full (backpressure).
        """
        try:
            self.queue.put_nowait(job_id)
        except queue.Full:
            prometheus_metrics.increment_retry_queue_drops(1)
            self._log_backpressure(job_id)
            return False

        prometheus_metrics.set_retry_queue_depth(self.queue.qsize())
        return True

    def _log_backpressure(self, job_id: int):
        # first drop, every 100th, and at least once a minute
        self._drop_count += 1
        now = time.time()
        if self._drop_count == 1 or self._drop_count % 100 == 0 or now - self._last_drop_log > 60:
            logger.warning("Retry queue full", extra={
                "component": "queue_manager",
                "event": "backpressure",
                "job_id": job_id,
                "queue_depth": self.queue.qsize(),
                "drop_count": self._drop_count
            })
            self._last_drop_log = now

    def _worker_loop(self, worker_id: int):
        logger.info("Retry worker started", extra={"component": "queue_manager", "worker_id": worker_id})
        while not self._stopping.is_set():
            try:
                job_id = self.queue.get(timeout=WORKER_POLL_SECONDS)
            except queue.Empty:
                continue
            try:
                if job_id is _STOP:
                    break
                result = execute_job(job_id, self.invoker)
                if not result.success:
                    logger.warning("Retried job failed", extra={
                        "component": "queue_manager",
                        "worker_id": worker_id,
                        "job_id": job_id,
                        "error": result.error
                    })
            except Exception as e:
                # execute_job records pipeline errors itself; this is a database or bug-level failure
                logger.error("Retry worker error", exc_info=True, extra={
                    "component": "queue_manager",
                    "worker_id": worker_id,
                    "job_id": job_id,
                    "error": str(e)
                })
            finally:
                self.queue.task_done()
                prometheus_metrics.set_retry_queue_depth(self.queue.qsize())

    def get_queue_stats(self) -> Dict[str, Any]:
        depth = self.queue.qsize()
        return {
            "depth": depth,
            "max": self.max_depth,
            "saturation": depth / self.max_depth if self.max_depth > 0 else 0.0,
            "workers": len(self.workers)
        }


# Global dispatcher instance
retry_dispatcher = RetryDispatcher()
