from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Index, func, text
from sqlalchemy.orm import relationship
from autopublish.db import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), ForeignKey("tenants.id"), index=True, nullable=False)
    city = Column(String(128), nullable=False)
    state = Column(String(64), nullable=False)
    neighborhood = Column(String(128), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_headquarters = Column(Boolean, nullable=False, default=False)
    last_used_at = Column(DateTime, nullable=True)  # rotation cursor; NULL = never used
    used_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    tenant = relationship("Tenant", back_populates="locations")

    __table_args__ = (
        # at most one headquarters per tenant
        Index(
            "uq_locations_tenant_headquarters",
            "tenant_id",
            unique=True,
            sqlite_where=text("is_headquarters = 1"),
            postgresql_where=text("is_headquarters"),
        ),
    )
