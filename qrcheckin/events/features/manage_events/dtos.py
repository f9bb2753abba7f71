"""Request and response bodies for event management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from qrcheckin.events.dtos import EmailStatus


class CreateEventRequest(BaseModel):
    title: str
    date: datetime
    location: str
    description: str | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    title: str
    date: datetime
    location: str
    description: str | None = None


class DeleteEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    deleted_attendee_count: int
    deleted_check_in_count: int


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    event_id: UUID
    name: str
    email: str
    phone: str | None = None
    adults: int
    kids: int
    adult_veg_meals: int
    adult_non_veg_meals: int
    kid_meals: int
    email_status: EmailStatus
    email_sent_at: datetime | None = None
    email_retry_count: int
    last_error_message: str | None = None
    is_checked_in: bool
    checked_in_at: datetime | None = None
    checked_in_by: str | None = None
    credential_token: str | None = None
    credential_image: str | None = None
