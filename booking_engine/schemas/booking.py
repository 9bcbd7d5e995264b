from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from booking_engine.schemas.conflicts import ConflictReport
from booking_engine.schemas.recurrence import RecurrencePattern
from booking_engine.schemas.scheduling import to_wall_clock


class BookingRequest(BaseModel):
    professional_id: str
    client_id: Optional[str] = None
    start_datetime: datetime
    service_ids: List[str] = Field(default_factory=list)
    duration_minutes: Optional[int] = None
    recurrence: RecurrencePattern = Field(default_factory=RecurrencePattern)
    exclude_appointment_id: Optional[str] = None

    @field_validator("start_datetime")
    @classmethod
    def normalize_start(cls, v):
        return to_wall_clock(v)


class PlannedOccurrence(BaseModel):
    index: int
    start_datetime: datetime
    end_datetime: datetime
    is_last: bool
    report: ConflictReport


class BookingPlan(BaseModel):
    """Validated, not yet persisted, set of appointments for one booking request."""

    recurrence_group_id: Optional[str] = None
    duration_minutes: int
    occurrences: List[PlannedOccurrence] = Field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return any(occurrence.report.has_conflict for occurrence in self.occurrences)

    @property
    def conflicting_occurrences(self) -> List[PlannedOccurrence]:
        return [o for o in self.occurrences if o.report.has_conflict]
