from functools import lru_cache

from fastapi import Depends

from qrcheckin.email_service import get_email_service
from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.features.send_credentials.dispatch import DispatchRegistry
from qrcheckin.events.repository.store import SqlAttendeeStore


@lru_cache
def get_dispatch_registry() -> DispatchRegistry:
    """One registry per process, so concurrent requests see the same running batches."""
    return DispatchRegistry(store=SqlAttendeeStore(), email_service=get_email_service())


def get_event_coordinator(
    dispatch: DispatchRegistry = Depends(get_dispatch_registry),
) -> EventCoordinator:
    return EventCoordinator(store=SqlAttendeeStore(), dispatch=dispatch)
