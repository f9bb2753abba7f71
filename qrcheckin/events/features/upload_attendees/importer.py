"""Bulk attendee import.

Turns an uploaded attendee list into attendee records for one event. Bad rows
are reported and skipped; re-uploading a file never resets an attendee that
already exists (its dispatch and check-in progress are kept).
"""

import logging
from uuid import UUID

from pydantic import EmailStr, TypeAdapter, ValidationError

from qrcheckin.events.dtos import (
    AttendeeRowDTO,
    EventNotFoundError,
    ImportResultDTO,
    InvalidUploadError,
)
from qrcheckin.events.features.issue_credentials.issuer import CredentialIssuer
from qrcheckin.events.features.upload_attendees.parsers import parse_upload
from qrcheckin.events.repository.store import AttendeeStore

logger = logging.getLogger(__name__)

NAME_COLUMNS = ("name", "full_name", "attendee_name")
FIRST_NAME_COLUMNS = ("first_name", "firstname", "primary_member_first_name")
LAST_NAME_COLUMNS = ("last_name", "lastname", "primary_member_last_name")
EMAIL_COLUMNS = ("email", "email_address", "e_mail")
PHONE_COLUMNS = ("phone", "phone_number", "mobile", "mobile_number")
# column -> accepted headers, after normalisation
COUNT_COLUMNS = {
    "adults": ("adults", "adult_count", "attending_adults"),
    "kids": ("kids", "children", "child_count"),
    "adult_veg_meals": ("adult_vegetarian", "adult_veg", "adult_veg_food"),
    "adult_non_veg_meals": ("adult_non_vegetarian", "adult_non_veg", "adult_non_veg_food"),
    "kid_meals": ("child", "kids_food", "child_meals", "kid_meals"),
}
COUNT_DEFAULTS = {
    "adults": 1,
    "kids": 0,
    "adult_veg_meals": 0,
    "adult_non_veg_meals": 0,
    "kid_meals": 0,
}

_email_adapter = TypeAdapter(EmailStr)


class RowValidationError(ValueError):
    """A single upload row is unusable."""


def _first_value(row: dict[str, str], columns: tuple[str, ...]) -> str:
    for column in columns:
        value = row.get(column)
        if value:
            return value.strip()
    return ""


def _phone(row: dict[str, str]) -> str | None:
    phone = _first_value(row, PHONE_COLUMNS)
    if not phone:
        # e.g. "Phone Number (used for member identification)"
        for header, value in row.items():
            if header.startswith("phone_number") and value:
                return value.strip()
    return phone or None


def _count(row: dict[str, str], field_name: str) -> int:
    raw = _first_value(row, COUNT_COLUMNS[field_name])
    if not raw:
        return COUNT_DEFAULTS[field_name]
    try:
        value = float(raw)
    except ValueError:
        raise RowValidationError(f"Invalid {field_name} value '{raw}'")
    if not value.is_integer() or value < 0:
        raise RowValidationError(f"Invalid {field_name} value '{raw}'")
    return int(value)


def validate_headers(rows: list[dict[str, str]]) -> None:
    headers = set()
    for row in rows:
        headers.update(row.keys())

    missing = []
    if not headers.intersection(NAME_COLUMNS + FIRST_NAME_COLUMNS):
        missing.append("name")
    if not headers.intersection(EMAIL_COLUMNS):
        missing.append("email")
    if missing:
        raise InvalidUploadError(
            f"File must have {' and '.join(missing)} column(s). Found: {sorted(headers)}"
        )


def row_to_attendee(row: dict[str, str]) -> AttendeeRowDTO:
    """Validate one upload row. Raises RowValidationError."""
    name = _first_value(row, NAME_COLUMNS)
    if not name:
        first_name = _first_value(row, FIRST_NAME_COLUMNS)
        last_name = _first_value(row, LAST_NAME_COLUMNS)
        name = f"{first_name} {last_name}".strip()
    email = _first_value(row, EMAIL_COLUMNS)

    if not name or not email:
        raise RowValidationError("Missing required fields (name, email)")

    try:
        email = _email_adapter.validate_python(email)
    except ValidationError:
        raise RowValidationError(f"Invalid email address '{email}'")

    return AttendeeRowDTO(
        name=name,
        email=email.lower(),
        phone=_phone(row),
        **{field_name: _count(row, field_name) for field_name in COUNT_COLUMNS},
    )


class AttendeeImporter:
    def __init__(self, store: AttendeeStore, credential_issuer: CredentialIssuer) -> None:
        self.store = store
        self.credential_issuer = credential_issuer

    async def import_file(self, event_id: UUID, filename: str, content: bytes) -> ImportResultDTO:
        """Parse an uploaded file and import every row into the event."""
        if await self.store.get_event(event_id) is None:
            raise EventNotFoundError(event_id)

        rows = parse_upload(filename, content)
        validate_headers(rows)
        return await self.import_rows(event_id, rows)

    async def import_rows(self, event_id: UUID, rows: list[dict[str, str]]) -> ImportResultDTO:
        success_count = 0
        errors: list[str] = []

        for row_number, row in enumerate(rows, start=1):
            try:
                attendee_row = row_to_attendee(row)
            except RowValidationError as e:
                errors.append(f"Row {row_number}: {e}")
                continue

            user_id = await self.store.get_or_create_person(
                email=attendee_row.email,
                name=attendee_row.name,
                phone=attendee_row.phone,
            )
            attendee, created = await self.store.get_or_create_attendee(
                event_id, user_id, attendee_row
            )
            if not created:
                logger.info("Attendee %s already registered for event %s", attendee.email, event_id)
            await self.credential_issuer.ensure_credential(attendee.uuid)
            success_count += 1

        logger.info(
            "Imported attendees for event %s: %d succeeded, %d failed",
            event_id,
            success_count,
            len(errors),
        )
        return ImportResultDTO(
            success_count=success_count,
            failed_count=len(errors),
            errors=errors,
        )
