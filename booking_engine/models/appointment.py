import enum
import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from booking_engine.core.database import Base


class AppointmentStatus(enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Appointments in these states never occupy the professional's time
NON_BLOCKING_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


class Appointment(Base):
    """Appointment record, read by the engine as a booked interval."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    tenant_id = Column(String(64), nullable=False)

    # Appointment participants
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    client_id = Column(String(64), nullable=True, index=True)

    # Scheduling details, naive wall-clock time in the business timezone
    scheduled_datetime = Column(DateTime, nullable=False, index=True)
    end_datetime = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Status management
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True
    )

    # Recurrence series membership
    recurrence_group_id = Column(String(64), nullable=True, index=True)
    recurrence_index = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    professional = relationship("Professional")

    __table_args__ = (
        Index("ix_appointments_professional_time", "professional_id", "scheduled_datetime"),
        CheckConstraint(
            "end_datetime > scheduled_datetime", name="check_end_after_start"
        ),
        CheckConstraint("duration_minutes > 0", name="check_positive_duration"),
    )

    @property
    def is_active(self) -> bool:
        """Whether the appointment still occupies its time slot."""
        return self.status not in [s.value for s in NON_BLOCKING_STATUSES]

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"datetime='{self.scheduled_datetime}', "
            f"client_id={self.client_id}, professional_id={self.professional_id})>"
        )
