import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from booking_engine.core.database import Base


class ScheduleBlockType(enum.Enum):
    VACATION = "VACATION"
    SICK_LEAVE = "SICK_LEAVE"
    PERSONAL = "PERSONAL"
    TRAINING = "TRAINING"
    HOLIDAY = "HOLIDAY"
    OTHER = "OTHER"


class ScheduleBlockStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScheduleBlock(Base):
    """Time-off or blocked period for a professional, with approval workflow."""

    __tablename__ = "schedule_blocks"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(
        Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4, index=True
    )
    tenant_id = Column(String(64), nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)

    # Blocked period
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_all_day = Column(Boolean, default=True, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # Type and details
    type = Column(String(20), nullable=False, default=ScheduleBlockType.PERSONAL.value)
    reason = Column(Text, nullable=True)

    # Approval workflow
    status = Column(
        String(20), nullable=False, default=ScheduleBlockStatus.PENDING.value
    )
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    professional = relationship("Professional", back_populates="schedule_blocks")

    __table_args__ = (
        Index("ix_schedule_blocks_professional", "tenant_id", "professional_id"),
        Index("ix_schedule_blocks_dates", "start_date", "end_date"),
        Index("ix_schedule_blocks_status", "status"),
        CheckConstraint("end_date >= start_date", name="check_block_date_order"),
    )

    @property
    def duration_days(self):
        return (self.end_date - self.start_date).days + 1

    def __repr__(self):
        window = "all day"
        if not self.is_all_day:
            window = f"{self.start_time}-{self.end_time}"
        return (
            f"<ScheduleBlock(id={self.id}, professional_id={self.professional_id}, "
            f"type={self.type}, status={self.status}, "
            f"{self.start_date} - {self.end_date}, {window})>"
        )
