from datetime import date as date_type, datetime, time
from enum import Enum
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.core.config import settings

# Import enums from the models to avoid duplication
from booking_engine.models.appointment import AppointmentStatus, NON_BLOCKING_STATUSES
from booking_engine.models.schedule_block import ScheduleBlockStatus, ScheduleBlockType


def to_wall_clock(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive business-timezone wall-clock time."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.BUSINESS_TIMEZONE)).replace(tzinfo=None)


class TenantScope(BaseModel):
    """Explicit tenant boundary passed to every engine call."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)


class SlotUnavailableReason(str, Enum):
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"
    BREAK = "BREAK"
    OUTSIDE_HOURS = "OUTSIDE_HOURS"


class DaySchedule(BaseModel):
    """Working hours of one weekday. ``day_of_week`` follows ``date.weekday()``."""

    day_of_week: int = Field(..., ge=0, le=6)
    is_working_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    @model_validator(mode="after")
    def validate_windows(self):
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("break_start and break_end must be set together")
        if not self.is_working_day:
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("A working day requires start_time and end_time")
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        if self.has_break and not (
            self.start_time <= self.break_start < self.break_end <= self.end_time
        ):
            raise ValueError("Break must lie within working hours")
        return self

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None


class ScheduleBlock(BaseModel):
    """Time-off or blocked period of a professional."""

    id: Optional[str] = None
    professional_id: str
    start_date: date_type
    end_date: date_type
    is_all_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: ScheduleBlockStatus = ScheduleBlockStatus.PENDING
    block_type: ScheduleBlockType = ScheduleBlockType.OTHER
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_period(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if not self.is_all_day:
            if self.start_time is None or self.end_time is None:
                raise ValueError("Partial-day blocks require start_time and end_time")
            if self.start_time >= self.end_time:
                raise ValueError("start_time must be before end_time")
        return self

    @property
    def is_approved(self) -> bool:
        return self.status == ScheduleBlockStatus.APPROVED


class BookedInterval(BaseModel):
    """Read projection of an existing appointment."""

    appointment_id: str
    professional_id: str
    client_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: Optional[AppointmentStatus] = None

    @model_validator(mode="after")
    def validate_interval(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def is_blocking(self) -> bool:
        return self.status not in NON_BLOCKING_STATUSES


class BlockPartition(BaseModel):
    """Approved blocks touching one date, split by how they apply."""

    full_day: List[ScheduleBlock] = Field(default_factory=list)
    partial_day: List[ScheduleBlock] = Field(default_factory=list)

    @property
    def has_blocks(self) -> bool:
        return bool(self.full_day or self.partial_day)

    @property
    def is_fully_blocked(self) -> bool:
        return bool(self.full_day)


class Slot(BaseModel):
    time: str
    start_datetime: datetime
    end_datetime: datetime
    is_available: bool
    reason: Optional[SlotUnavailableReason] = None
    appointment_id: Optional[str] = None


class AvailabilityOptions(BaseModel):
    service_ids: List[str] = Field(default_factory=list)
    duration: Optional[int] = None


class NextAvailableSlotsQuery(AvailabilityOptions):
    limit: Optional[int] = None
    start_from: Optional[datetime] = None

    @field_validator("start_from")
    @classmethod
    def normalize_start_from(cls, v):
        return to_wall_clock(v)


class DayAvailability(BaseModel):
    professional_id: str
    date: date_type
    slots: List[Slot] = Field(default_factory=list)
    is_working_day: bool
    has_blocked_period: bool = False
    working_hours: Optional[DaySchedule] = None

    @property
    def available_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.is_available]


class DayAvailabilitySummary(BaseModel):
    date: date_type
    available: bool
    slot_count: int


class SlotCheckResult(BaseModel):
    available: bool
    reason: Optional[str] = None
    appointment_id: Optional[str] = None
