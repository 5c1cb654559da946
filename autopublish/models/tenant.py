from sqlalchemy import Column, String, Integer, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from autopublish.db import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(64), primary_key=True)
    name = Column(String(128), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    timezone = Column(String(64), nullable=False, default="America/Denver")  # IANA name
    auto_schedule_enabled = Column(Boolean, nullable=False, default=False)
    schedule_day_pair = Column(String(16), nullable=True, index=True)  # DayPair name, e.g. "TUE_THU"
    schedule_time_slot = Column(Integer, nullable=True)  # 0-9 index into SLOT_HOURS
    schedule_frequency = Column(Integer, nullable=False, default=2)  # posts per week
    last_scheduled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    locations = relationship("Location", back_populates="tenant", cascade="all, delete-orphan")
    templates = relationship("Template", back_populates="tenant", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "timezone": self.timezone,
            "auto_schedule_enabled": self.auto_schedule_enabled,
            "schedule_day_pair": self.schedule_day_pair,
            "schedule_time_slot": self.schedule_time_slot,
            "schedule_frequency": self.schedule_frequency,
            "last_scheduled_at": self.last_scheduled_at.isoformat() if self.last_scheduled_at else None,
        }
