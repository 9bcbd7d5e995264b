import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from booking_engine.core.database import Base


class Professional(Base):
    """Bookable professional (stylist, therapist, doctor) within a tenant."""

    __tablename__ = "professionals"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=False)

    # Booking settings
    is_bookable = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    working_hours = relationship(
        "WorkingHours", back_populates="professional", cascade="all, delete-orphan"
    )
    schedule_blocks = relationship(
        "ScheduleBlock", back_populates="professional", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return (
            f"<Professional(id={self.id}, name='{self.name}', "
            f"tenant={self.tenant_id}, bookable={self.is_bookable})>"
        )
