from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.admin import router as admin_router
from .api.cron import router as cron_router
from .api.health import router as health_router
from .api.prometheus import router as prometheus_router
from .config import API_PREFIX, API_VERSION, RETRY_WORKERS_ENABLED
from .db import init_db
from .logging_config import setup_logging
from .middleware import TracingMiddleware
from .queue_manager import retry_dispatcher
from .scheduling.errors import (
    ConfigurationError, DuplicateLiveJob, InvalidTransition, JobNotFound, NoCombinationAvailable,
    RetryLimitExceeded, RetryQueueFull, SchedulingError, TenantNotFound,
)

# Configure logging at import time
setup_logging()

logger = logging.getLogger("autopublish")

_ERROR_STATUS = (
    ((TenantNotFound, JobNotFound), 404),
    ((RetryLimitExceeded, InvalidTransition, DuplicateLiveJob), 409),
    ((NoCombinationAvailable, ConfigurationError), 422),
    ((RetryQueueFull,), 503),
)


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info("autopublish starting up", extra={"component": "api", "version": API_VERSION})
    init_db()
    if RETRY_WORKERS_ENABLED:
        retry_dispatcher.start_workers()
    try:
        yield
    finally:
        retry_dispatcher.stop_workers()
        logger.info("autopublish shutting down", extra={"component": "api"})


app = FastAPI(title="autopublish scheduler", version=API_VERSION, lifespan=lifespan)

app.add_middleware(TracingMiddleware)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status_code = 400
    for types, code in _ERROR_STATUS:
        if isinstance(exc, types):
            status_code = code
            break
    logger.warning("Request rejected: %s", exc, extra={
        "component": "api", "path": request.url.path, "status": status_code,
    })
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


app.include_router(health_router, prefix=API_PREFIX)
app.include_router(prometheus_router, prefix=API_PREFIX)
app.include_router(cron_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)
