from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from autopublish.db import Base
from autopublish.time_utils import utcnow


class Asset(Base):
    """Media produced for a job by the external pipeline (images, audio, video)."""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), index=True, nullable=False)
    kind = Column(String(16), nullable=False)  # IMAGE | AUDIO | VIDEO
    status = Column(String(16), nullable=False, default="PROCESSING")  # PROCESSING | READY | PUBLISHED | FAILED
    public_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    job = relationship("Job", back_populates="assets")

    __table_args__ = (
        Index("ix_assets_kind_status", "kind", "status"),
    )
