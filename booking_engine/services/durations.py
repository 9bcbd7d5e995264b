from typing import Optional, Sequence

import structlog

from booking_engine.core.config import settings
from booking_engine.core.exceptions import SchedulingValidationError, ValidationErrorKind
from booking_engine.services.store import SchedulingStore

logger = structlog.get_logger(__name__)


async def calculate_services_duration(
    store: SchedulingStore, tenant_id: str, service_ids: Sequence[str]
) -> int:
    """Sum the durations of the given services.

    No services requested means the configured default; requested services that
    are all missing or inactive sum to zero.
    """
    if not service_ids:
        return settings.DEFAULT_SLOT_DURATION_MINUTES

    durations = await store.get_service_durations(tenant_id, list(service_ids))
    total = sum(durations)
    if total == 0:
        logger.warning(
            "No active services found", tenant_id=tenant_id, service_ids=list(service_ids)
        )
    return total


async def resolve_duration(
    store: SchedulingStore,
    tenant_id: str,
    service_ids: Sequence[str],
    duration: Optional[int],
) -> int:
    """Explicit duration wins over service durations; it must be positive."""
    if duration is not None:
        if duration <= 0:
            raise SchedulingValidationError(
                ValidationErrorKind.INVALID_DURATION,
                f"Duration must be a positive number of minutes, got {duration}",
            )
        return duration
    return await calculate_services_duration(store, tenant_id, service_ids)
