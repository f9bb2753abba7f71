from uuid import UUID

from fastapi import APIRouter, Depends, status

from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.features.manage_events.dtos import (
    AttendeeResponse,
    CreateEventRequest,
    DeleteEventResponse,
    EventResponse,
)
from qrcheckin.events.urls import EVENT_URL, EVENTS_URL, LIST_ATTENDEES_URL

router = APIRouter()


@router.post(EVENTS_URL, response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: CreateEventRequest,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> EventResponse:
    event = await coordinator.create_event(
        title=request.title,
        date=request.date,
        location=request.location,
        description=request.description,
    )
    return EventResponse.model_validate(event)


@router.get(EVENTS_URL, response_model=list[EventResponse])
async def list_events(
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> list[EventResponse]:
    """Events, most recent date first."""
    events = await coordinator.list_events()
    return [EventResponse.model_validate(event) for event in events]


@router.delete(EVENT_URL, response_model=DeleteEventResponse)
async def delete_event(
    event_id: UUID,
    confirm: bool = False,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> DeleteEventResponse:
    """
    Delete an event together with all its attendees and check-ins.

    Requires `?confirm=true`; without it nothing is deleted and 400 is returned.
    """
    deleted = await coordinator.delete_event(event_id, confirmed=confirm)
    return DeleteEventResponse.model_validate(deleted)


@router.get(LIST_ATTENDEES_URL, response_model=list[AttendeeResponse])
async def list_attendees(
    event_id: UUID,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> list[AttendeeResponse]:
    attendees = await coordinator.list_attendees(event_id)
    return [AttendeeResponse.model_validate(attendee) for attendee in attendees]
