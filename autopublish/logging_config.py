import logging
import logging.config
import os
import yaml
import json
from datetime import datetime, timezone
from typing import Optional
import contextvars

from . import config as app_config

# Context variable for trace ID
trace_id_var = contextvars.ContextVar('trace_id', default=None)

# Fields rendered explicitly or never worth emitting
_RESERVED = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'exc_info', 'exc_text', 'stack_info', 'message',
    'method', 'path', 'status', 'latency_ms', 'tenant_id', 'job_id', 'component',
}


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


class JsonFormatter(logging.Formatter):
    """JSON formatter with structured fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": get_trace_id(),
            "method": getattr(record, 'method', None),
            "path": getattr(record, 'path', None),
            "status": getattr(record, 'status', None),
            "latency_ms": getattr(record, 'latency_ms', None),
            "tenant_id": getattr(record, 'tenant_id', None),
            "job_id": getattr(record, 'job_id', None),
            "component": getattr(record, 'component', 'api')
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging():
    """Setup logging configuration from YAML file or environment"""

    log_format = app_config.LOG_FORMAT
    log_level = app_config.LOG_LEVEL

    # Try to load YAML config
    config = None
    if os.path.exists("LOGGING.yaml"):
        try:
            with open("LOGGING.yaml", 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logging.getLogger(__name__).warning("Could not load LOGGING.yaml: %s", e)

    # Fallback to basic config if YAML not available
    if not config:
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": JsonFormatter},
                "text": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": log_format,
                    "stream": "ext://sys.stdout"
                }
            },
            "loggers": {
                "autopublish": {"level": log_level, "propagate": True},
                "queue_manager": {"level": log_level, "propagate": True},
                "uvicorn": {"level": log_level, "propagate": True},
                "uvicorn.access": {"level": log_level, "propagate": True}
            },
            "root": {
                "level": log_level,
                "handlers": ["console"]
            }
        }

    # Apply environment overrides
    if log_format == "text":
        for handler in config.get("handlers", {}).values():
            if "formatter" in handler:
                handler["formatter"] = "text"

    for logger in config.get("loggers", {}).values():
        logger["level"] = log_level

    logging.config.dictConfig(config)
    return config
