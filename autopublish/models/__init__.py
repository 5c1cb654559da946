from .tenant import Tenant
from .location import Location
from .template import Template
from .job import Job
from .asset import Asset
from .audit_log import AuditLog

__all__ = ["Tenant", "Location", "Template", "Job", "Asset", "AuditLog"]
