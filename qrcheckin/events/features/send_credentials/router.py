from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.dtos import DispatchStatusDTO, EmailStatus
from qrcheckin.events.urls import DISPATCH_URL, RETRY_ATTENDEE_URL, STOP_DISPATCH_URL

router = APIRouter()


class StartDispatchRequest(BaseModel):
    attendee_ids: list[UUID]


class RetryRequest(BaseModel):
    force_retry: bool = False


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current: int
    total: int
    sent: int
    failed: int
    skipped: int
    attendee_id: UUID | None = None
    email_status: EmailStatus | None = None


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    sent: int
    failed: int
    skipped: int
    cancelled: bool
    remaining_selection: list[UUID]
    errors: list[str]


class DispatchStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    running: bool
    progress: ProgressResponse | None = None
    summary: SummaryResponse | None = None
    error: str | None = None


class RetryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attendee_id: UUID
    success: bool
    email_status: EmailStatus
    error: str | None = None


def to_status_response(dispatch_status: DispatchStatusDTO) -> DispatchStatusResponse:
    return DispatchStatusResponse.model_validate(dispatch_status)


@router.post(DISPATCH_URL, response_model=DispatchStatusResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_dispatch(
    event_id: UUID,
    request: StartDispatchRequest,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> DispatchStatusResponse:
    """
    Start sending QR codes to the selected attendees in the background.

    Only one run per event may be active; a second request gets 409.
    Poll the GET endpoint for progress and the final summary.
    """
    return to_status_response(await coordinator.start_batch(event_id, request.attendee_ids))


@router.get(DISPATCH_URL, response_model=DispatchStatusResponse)
async def get_dispatch_status(
    event_id: UUID,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> DispatchStatusResponse:
    return to_status_response(await coordinator.batch_status(event_id))


@router.post(STOP_DISPATCH_URL, response_model=DispatchStatusResponse)
async def stop_dispatch(
    event_id: UUID,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> DispatchStatusResponse:
    """Ask the active run to stop after the send in progress."""
    return to_status_response(await coordinator.stop_batch(event_id))


@router.post(RETRY_ATTENDEE_URL, response_model=RetryResponse)
async def retry_attendee(
    attendee_id: UUID,
    request: RetryRequest,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> RetryResponse:
    result = await coordinator.retry_single(attendee_id, force_retry=request.force_retry)
    return RetryResponse.model_validate(result)
