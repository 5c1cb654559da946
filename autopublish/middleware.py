import logging
import random
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from . import config
from .logging_config import trace_id_var
from .services.prometheus_metrics import prometheus_metrics

logger = logging.getLogger("autopublish.http")


class TracingMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for request tracing and structured logging"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.exclude_paths = config.HTTP_LOG_EXCLUDE_PATHS
        self.sample_rate = config.HTTP_LOG_SAMPLE_RATE

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or reuse trace ID
        trace_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = trace_id_var.set(trace_id)
        path = request.url.path
        start_time = time.time()

        try:
            response = await call_next(request)
            latency_ms = round((time.time() - start_time) * 1000, 2)

            self._log_request(request.method, path, response.status_code, latency_ms)
            prometheus_metrics.increment_requests(response.status_code, path)

            response.headers["X-Request-ID"] = trace_id
            return response

        except Exception as e:
            latency_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(f"Request failed: {str(e)}", extra={
                "method": request.method,
                "path": path,
                "status": 500,
                "latency_ms": latency_ms
            })
            prometheus_metrics.increment_requests(500, path)
            raise
        finally:
            trace_id_var.reset(token)

    def _log_request(self, method: str, path: str, status: int, latency_ms: float):
        """Log HTTP request with structured data and sampling"""
        if path in self.exclude_paths:
            return

        extra = {"method": method, "path": path, "status": status, "latency_ms": latency_ms}

        # Always log errors
        if status >= 400:
            logger.log(logging.ERROR if status >= 500 else logging.WARNING, "HTTP Request", extra=extra)
            return

        if random.random() > self.sample_rate:
            return
        logger.info("HTTP Request", extra=extra)
