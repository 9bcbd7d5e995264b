import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from booking_engine.core.database import Base


class WeekDay(enum.Enum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class WorkingHours(Base):
    """Weekly working hours of a professional, with optional break."""

    __tablename__ = "working_hours"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    tenant_id = Column(String(64), nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)

    # Schedule details, weekday follows date.weekday()
    weekday = Column(Integer, nullable=False)
    is_working_day = Column(Boolean, default=True, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Break configuration (optional)
    break_start_time = Column(Time, nullable=True)
    break_end_time = Column(Time, nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    professional = relationship("Professional", back_populates="working_hours")

    # Database constraints
    __table_args__ = (
        Index("ix_working_hours_professional", "tenant_id", "professional_id"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="check_weekday_range"),
    )

    def duration_minutes(self) -> int:
        """Working duration in minutes, accounting for breaks."""
        total_minutes = _minutes(self.end_time) - _minutes(self.start_time)
        if self.break_start_time and self.break_end_time:
            total_minutes -= _minutes(self.break_end_time) - _minutes(
                self.break_start_time
            )
        return max(0, total_minutes)

    def __repr__(self):
        break_info = ""
        if self.break_start_time and self.break_end_time:
            break_info = f", break={self.break_start_time}-{self.break_end_time}"

        return (
            f"<WorkingHours(id={self.id}, professional_id={self.professional_id}, "
            f"{WeekDay(self.weekday).name}: {self.start_time}-{self.end_time}"
            f"{break_info})>"
        )


def _minutes(value) -> int:
    return value.hour * 60 + value.minute
