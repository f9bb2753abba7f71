from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.features.manage_events.dtos import AttendeeResponse
from qrcheckin.events.urls import CHECK_IN_STATS_URL, CHECK_IN_URL, VERIFY_URL

router = APIRouter()


class CheckInRequest(BaseModel):
    payload: str | None = None
    email: str | None = None
    checked_in_by: str | None = None


class VerifyRequest(BaseModel):
    payload: str


class CheckInResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    already_checked_in: bool
    attendee_id: UUID
    resolved_name: str
    resolved_email: str
    checked_in_at: datetime | None = None
    adults: int
    kids: int
    adult_veg_meals: int
    adult_non_veg_meals: int
    kid_meals: int


class CheckInStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    checked_in: int
    pending: int
    percentage_complete: int
    expected_headcount: int
    checked_in_headcount: int


@router.post(CHECK_IN_URL, response_model=CheckInResponse)
async def check_in(
    event_id: UUID,
    request: CheckInRequest,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> CheckInResponse:
    """
    Check an attendee in by scanned QR payload, or by email as a fallback.

    Scanning the same code twice is not an error: the second response has
    `already_checked_in` set and the original check-in time.
    """
    result = await coordinator.check_in(
        event_id,
        payload=request.payload,
        email=request.email,
        checked_in_by=request.checked_in_by,
    )
    return CheckInResponse.model_validate(result)


@router.post(VERIFY_URL, response_model=AttendeeResponse)
async def verify_credential(
    event_id: UUID,
    request: VerifyRequest,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> AttendeeResponse:
    """Look up the attendee behind a QR code without checking them in."""
    attendee = await coordinator.verify(event_id, request.payload)
    return AttendeeResponse.model_validate(attendee)


@router.get(CHECK_IN_STATS_URL, response_model=CheckInStatsResponse)
async def check_in_stats(
    event_id: UUID,
    coordinator: EventCoordinator = Depends(get_event_coordinator),
) -> CheckInStatsResponse:
    return CheckInStatsResponse.model_validate(await coordinator.check_in_stats(event_id))
