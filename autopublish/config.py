"""
Configuration module for the autopublish scheduler
"""

# Application configuration
import os
from pathlib import Path


def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _read_version_from_repo(default: str = "dev") -> str:
    try:
        # repo root: autopublish/.. (two parents up)
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)


API_VERSION = _read_version_from_repo()
API_PREFIX = "/v1"

# Database configuration
sqlite_path = os.getenv("SQLITE_PATH", "./autopublish.db")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{sqlite_path}")

# Shared secrets (bearer credentials)
CRON_SECRET = os.getenv("CRON_SECRET", "")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
HTTP_LOG_SAMPLE_RATE = float(os.getenv("HTTP_LOG_SAMPLE_RATE", "1.0"))
HTTP_LOG_EXCLUDE_PATHS = set(os.getenv("HTTP_LOG_EXCLUDE_PATHS", "/v1/healthz,/v1/metrics/prometheus").split(","))

# Scheduling configuration
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Denver")
MAX_TENANTS_PER_DAY = int(os.getenv("MAX_TENANTS_PER_DAY", "10"))
DEFAULT_DAY_PAIR = os.getenv("DEFAULT_DAY_PAIR", "TUE_THU")
INTER_TENANT_DELAY_SECONDS = float(os.getenv("INTER_TENANT_DELAY_SECONDS", "1.0"))

# Recovery configuration
STALE_JOB_HOURS = float(os.getenv("STALE_JOB_HOURS", "2"))
STALE_ASSET_HOURS = float(os.getenv("STALE_ASSET_HOURS", "4"))
RECOVERY_BATCH_SIZE = int(os.getenv("RECOVERY_BATCH_SIZE", "10"))
RECOVERY_MIN_ASSETS = int(os.getenv("RECOVERY_MIN_ASSETS", "1"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))

# Pipeline configuration
PIPELINE_URL = os.getenv("PIPELINE_URL", "")
PIPELINE_TOKEN = os.getenv("PIPELINE_TOKEN", "")
PIPELINE_TIMEOUT_SECONDS = float(os.getenv("PIPELINE_TIMEOUT_SECONDS", "720"))

# Retry dispatcher configuration
RETRY_QUEUE_MAX_DEPTH = int(os.getenv("RETRY_QUEUE_MAX_DEPTH", "100"))
RETRY_WORKER_POOL_SIZE = int(os.getenv("RETRY_WORKER_POOL_SIZE", "2"))
RETRY_WORKERS_ENABLED = env_bool("RETRY_WORKERS_ENABLED", True)
