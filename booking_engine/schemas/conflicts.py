from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from booking_engine.schemas.scheduling import to_wall_clock


class ConflictType(str, Enum):
    PROFESSIONAL_BUSY = "PROFESSIONAL_BUSY"
    CLIENT_BUSY = "CLIENT_BUSY"
    BLOCKED_TIME = "BLOCKED_TIME"
    OUTSIDE_WORKING_HOURS = "OUTSIDE_WORKING_HOURS"


class ConflictEntry(BaseModel):
    type: ConflictType
    detail: str
    start_datetime: datetime
    end_datetime: datetime
    appointment_id: Optional[str] = None
    schedule_block_id: Optional[str] = None


class ConflictReport(BaseModel):
    has_conflict: bool
    conflicts: List[ConflictEntry] = Field(default_factory=list)

    @classmethod
    def from_conflicts(cls, conflicts: List[ConflictEntry]) -> "ConflictReport":
        return cls(has_conflict=len(conflicts) > 0, conflicts=conflicts)

    @property
    def conflict_types(self) -> List[ConflictType]:
        return [conflict.type for conflict in self.conflicts]


class ConflictCheckRequest(BaseModel):
    professional_id: str
    client_id: Optional[str] = None
    start_datetime: datetime
    duration_minutes: int
    exclude_appointment_id: Optional[str] = None

    @field_validator("start_datetime")
    @classmethod
    def normalize_start(cls, v):
        return to_wall_clock(v)

    @property
    def end_datetime(self) -> datetime:
        return self.start_datetime + timedelta(minutes=self.duration_minutes)
