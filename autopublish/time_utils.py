"""
Time helpers. Everything persisted is naive UTC; tenant-local values are
derived on demand from the tenant's IANA zone.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import config

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(moment: datetime) -> datetime:
    """Normalise an aware or naive-UTC datetime to naive UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_zone(name: Optional[str]) -> Tuple[ZoneInfo, bool]:
    """
    Return (zone, fell_back). Unknown or empty names fall back to the
    configured default zone instead of raising.
    """
    if name:
        try:
            return ZoneInfo(name), False
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to %s", name, config.DEFAULT_TIMEZONE)
    return ZoneInfo(config.DEFAULT_TIMEZONE), True


def to_local(moment: datetime, zone: ZoneInfo) -> datetime:
    return as_utc(moment).replace(tzinfo=timezone.utc).astimezone(zone)

