from datetime import date as date_type, datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class RecurrenceType(str, Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class RecurrencePattern(BaseModel):
    type: RecurrenceType = RecurrenceType.NONE
    interval: int = Field(1, ge=1)
    count: Optional[int] = Field(None, ge=1)
    end_date: Optional[date_type] = None

    @property
    def is_recurring(self) -> bool:
        return self.type != RecurrenceType.NONE


class Occurrence(BaseModel):
    date: Union[datetime, date_type]
    index: int
    is_last: bool = False


class PatternValidation(BaseModel):
    valid: bool
    error: Optional[str] = None
