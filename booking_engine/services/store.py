import uuid
from datetime import date, datetime
from typing import List, Optional, Protocol, Sequence

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import StoreUnavailableError
from booking_engine.models.appointment import Appointment, AppointmentStatus, NON_BLOCKING_STATUSES
from booking_engine.models.professional import Professional
from booking_engine.models.schedule_block import ScheduleBlock as ScheduleBlockModel
from booking_engine.models.schedule_block import ScheduleBlockStatus, ScheduleBlockType
from booking_engine.models.service import Service
from booking_engine.models.working_hours import WorkingHours
from booking_engine.schemas.scheduling import BookedInterval, DaySchedule, ScheduleBlock

logger = structlog.get_logger(__name__)


class SchedulingStore(Protocol):
    """Read interface the engine consumes. Every call is scoped to one tenant.

    Booking reads return intervals overlapping ``[start, end)`` and never include
    cancelled or no-show appointments.
    """

    async def get_working_hours(
        self, tenant_id: str, professional_id: str
    ) -> List[DaySchedule]: ...

    async def get_approved_blocks(
        self, tenant_id: str, professional_id: str, start_date: date, end_date: date
    ) -> List[ScheduleBlock]: ...

    async def get_professional_bookings(
        self, tenant_id: str, professional_id: str, start: datetime, end: datetime
    ) -> List[BookedInterval]: ...

    async def get_client_bookings(
        self, tenant_id: str, client_id: str, start: datetime, end: datetime
    ) -> List[BookedInterval]: ...

    async def get_service_durations(
        self, tenant_id: str, service_ids: Sequence[str]
    ) -> List[int]: ...


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlAlchemySchedulingStore:
    """SchedulingStore over a single AsyncSession, so one query sees one snapshot."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, operation: str, statement):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            logger.error("Scheduling store read failed", operation=operation, exc_info=e)
            raise StoreUnavailableError(operation, e) from e

    async def get_working_hours(
        self, tenant_id: str, professional_id: str
    ) -> List[DaySchedule]:
        professional_uuid = _parse_uuid(professional_id)
        if professional_uuid is None:
            return []

        query = (
            select(WorkingHours)
            .join(Professional, WorkingHours.professional_id == Professional.id)
            .where(
                and_(
                    Professional.uuid == professional_uuid,
                    Professional.tenant_id == tenant_id,
                    WorkingHours.tenant_id == tenant_id,
                    WorkingHours.is_active,
                )
            )
            .order_by(WorkingHours.weekday)
        )
        result = await self._execute("get_working_hours", query)

        return [
            DaySchedule(
                day_of_week=row.weekday,
                is_working_day=row.is_working_day,
                start_time=row.start_time,
                end_time=row.end_time,
                break_start=row.break_start_time,
                break_end=row.break_end_time,
            )
            for row in result.scalars().all()
        ]

    async def get_approved_blocks(
        self, tenant_id: str, professional_id: str, start_date: date, end_date: date
    ) -> List[ScheduleBlock]:
        professional_uuid = _parse_uuid(professional_id)
        if professional_uuid is None:
            return []

        query = (
            select(ScheduleBlockModel)
            .join(Professional, ScheduleBlockModel.professional_id == Professional.id)
            .where(
                and_(
                    Professional.uuid == professional_uuid,
                    Professional.tenant_id == tenant_id,
                    ScheduleBlockModel.tenant_id == tenant_id,
                    ScheduleBlockModel.status == ScheduleBlockStatus.APPROVED.value,
                    ScheduleBlockModel.start_date <= end_date,
                    ScheduleBlockModel.end_date >= start_date,
                )
            )
            .order_by(ScheduleBlockModel.start_date)
        )
        result = await self._execute("get_approved_blocks", query)

        return [
            ScheduleBlock(
                id=str(row.uuid),
                professional_id=professional_id,
                start_date=row.start_date,
                end_date=row.end_date,
                is_all_day=row.is_all_day,
                start_time=row.start_time,
                end_time=row.end_time,
                status=ScheduleBlockStatus(row.status),
                block_type=ScheduleBlockType(row.type),
                reason=row.reason,
            )
            for row in result.scalars().all()
        ]

    async def get_professional_bookings(
        self, tenant_id: str, professional_id: str, start: datetime, end: datetime
    ) -> List[BookedInterval]:
        professional_uuid = _parse_uuid(professional_id)
        if professional_uuid is None:
            return []
        return await self._bookings(
            "get_professional_bookings",
            tenant_id,
            Professional.uuid == professional_uuid,
            start,
            end,
        )

    async def get_client_bookings(
        self, tenant_id: str, client_id: str, start: datetime, end: datetime
    ) -> List[BookedInterval]:
        return await self._bookings(
            "get_client_bookings", tenant_id, Appointment.client_id == client_id, start, end
        )

    async def _bookings(
        self, operation: str, tenant_id: str, owner_clause, start: datetime, end: datetime
    ) -> List[BookedInterval]:
        query = (
            select(Appointment, Professional.uuid)
            .join(Professional, Appointment.professional_id == Professional.id)
            .where(
                and_(
                    owner_clause,
                    Appointment.tenant_id == tenant_id,
                    Professional.tenant_id == tenant_id,
                    Appointment.status.notin_([s.value for s in NON_BLOCKING_STATUSES]),
                    # Overlap with [start, end)
                    Appointment.scheduled_datetime < end,
                    Appointment.end_datetime > start,
                )
            )
            .order_by(Appointment.scheduled_datetime)
        )
        result = await self._execute(operation, query)

        return [
            BookedInterval(
                appointment_id=str(appointment.uuid),
                professional_id=str(professional_uuid),
                client_id=appointment.client_id,
                start_time=appointment.scheduled_datetime,
                end_time=appointment.end_datetime,
                status=AppointmentStatus(appointment.status),
            )
            for appointment, professional_uuid in result.all()
        ]

    async def get_service_durations(
        self, tenant_id: str, service_ids: Sequence[str]
    ) -> List[int]:
        service_uuids = [u for u in (_parse_uuid(s) for s in service_ids) if u]
        if not service_uuids:
            return []

        query = select(Service.duration_minutes).where(
            and_(
                Service.uuid.in_(service_uuids),
                Service.tenant_id == tenant_id,
                Service.is_active,
            )
        )
        result = await self._execute("get_service_durations", query)
        return list(result.scalars().all())
