from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Index, Text, text
from sqlalchemy.orm import relationship
from autopublish.db import Base
from autopublish.time_utils import utcnow


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), ForeignKey("tenants.id"), index=True, nullable=False)
    template_id = Column(Integer, ForeignKey("templates.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    rendered_text = Column(Text, nullable=False)
    scheduled_date = Column(Date, nullable=False)  # tenant-local calendar day
    scheduled_at = Column(DateTime, nullable=False)  # UTC instant the job was created for
    scheduled_time = Column(String(5), nullable=True)  # "HH:00" tenant-local label
    status = Column(String(16), nullable=False, default="SCHEDULED", index=True)  # see scheduling.states
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    primary_text = Column(Text, nullable=True)  # written by the pipeline
    audio_embedded = Column(Boolean, nullable=False, default=False)
    audio_embedded_at = Column(DateTime, nullable=True)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    template = relationship("Template")
    location = relationship("Location")
    assets = relationship("Asset", back_populates="job", cascade="all, delete-orphan")

    __table_args__ = (
        # one live job per tenant per local day; FAILED rows don't count
        Index(
            "uq_jobs_tenant_day_live",
            "tenant_id",
            "scheduled_date",
            unique=True,
            sqlite_where=text("status != 'FAILED'"),
            postgresql_where=text("status != 'FAILED'"),
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "template_id": self.template_id,
            "location_id": self.location_id,
            "rendered_text": self.rendered_text,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "scheduled_time": self.scheduled_time,
            "status": self.status,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
        }
