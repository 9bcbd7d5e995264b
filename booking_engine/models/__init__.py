# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    professional,
    schedule_block,
    service,
    working_hours,
)

__all__ = [
    "appointment",
    "professional",
    "schedule_block",
    "service",
    "working_hours",
]
