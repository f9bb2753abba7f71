from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class CheckInPipelineError(Exception):
    """Base class for errors raised by the check-in pipeline."""


class EventNotFoundError(CheckInPipelineError):
    def __init__(self, event_id: UUID | str) -> None:
        self.event_id = event_id
        super().__init__(f"Event '{event_id}' not found")


class AttendeeNotFoundError(CheckInPipelineError):
    def __init__(self, attendee_id: UUID | str) -> None:
        self.attendee_id = attendee_id
        super().__init__(f"Attendee '{attendee_id}' not found")


class InvalidEventError(CheckInPipelineError):
    """Raised when an event is created without its required details."""


class NoActiveEventError(CheckInPipelineError):
    """Raised when no event was given and none is remembered."""


class ConfirmationRequiredError(CheckInPipelineError):
    """Raised when a destructive operation is invoked without confirmation."""


class UnsupportedUploadError(CheckInPipelineError):
    """Raised for uploads that are neither CSV nor Excel."""


class InvalidUploadError(CheckInPipelineError):
    """Raised when an upload cannot be read as an attendee list at all."""


class BatchAlreadyRunningError(CheckInPipelineError):
    def __init__(self, event_id: UUID) -> None:
        self.event_id = event_id
        super().__init__(f"A dispatch run is already active for event '{event_id}'")


class AttendeeNotSelectableError(CheckInPipelineError):
    def __init__(self, attendee_id: UUID, reason: str) -> None:
        self.attendee_id = attendee_id
        self.reason = reason
        super().__init__(f"Attendee '{attendee_id}' cannot be sent to: {reason}")


class CredentialRejectedError(CheckInPipelineError):
    """A scanned credential was refused. `code` lets callers tell the reasons apart."""

    code = "rejected"


class MalformedCredentialError(CredentialRejectedError):
    code = "malformed"

    def __init__(self, message: str = "Invalid QR code format") -> None:
        super().__init__(message)


class WrongEventError(CredentialRejectedError):
    code = "wrong_event"

    def __init__(self, credential_event_id: str, active_event_id: UUID) -> None:
        self.credential_event_id = credential_event_id
        self.active_event_id = active_event_id
        super().__init__(
            f"QR code is for a different event. "
            f"QR event: {credential_event_id}, scanner event: {active_event_id}"
        )


class UnknownAttendeeError(CredentialRejectedError):
    code = "unknown_attendee"

    def __init__(self, message: str = "Attendee not registered for this event") -> None:
        super().__init__(message)


class EmailStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    # Never assigned by the batch path, selectable like FAILED
    RETRY_SCHEDULED = "RETRY_SCHEDULED"


SELECTABLE_EMAIL_STATUSES = frozenset(
    {EmailStatus.PENDING, EmailStatus.FAILED, EmailStatus.RETRY_SCHEDULED}
)


@dataclass(frozen=True)
class EventDTO:
    uuid: UUID
    title: str
    date: datetime
    location: str
    description: str | None = None


@dataclass(frozen=True)
class DeletedEventDTO:
    event_id: UUID
    deleted_attendee_count: int
    deleted_check_in_count: int


@dataclass(frozen=True)
class AttendeeRowDTO:
    """One validated row of an attendee upload."""

    name: str
    email: str
    phone: str | None = None
    adults: int = 1
    kids: int = 0
    adult_veg_meals: int = 0
    adult_non_veg_meals: int = 0
    kid_meals: int = 0


@dataclass(frozen=True)
class AttendeeDTO:
    uuid: UUID
    event_id: UUID
    user_id: UUID
    name: str
    email: str
    phone: str | None = None
    adults: int = 1
    kids: int = 0
    adult_veg_meals: int = 0
    adult_non_veg_meals: int = 0
    kid_meals: int = 0
    email_status: EmailStatus = EmailStatus.PENDING
    email_sent_at: datetime | None = None
    email_retry_count: int = 0
    last_error_message: str | None = None
    is_checked_in: bool = False
    checked_in_at: datetime | None = None
    checked_in_by: str | None = None
    credential_token: str | None = None
    credential_image: str | None = None

    @property
    def is_selectable(self) -> bool:
        """Whether a batch may send to this attendee."""
        return not self.is_checked_in and self.email_status in SELECTABLE_EMAIL_STATUSES

    @property
    def headcount(self) -> int:
        return self.adults + self.kids


@dataclass(frozen=True)
class ImportResultDTO:
    success_count: int
    failed_count: int
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BatchProgressDTO:
    current: int
    total: int
    sent: int
    failed: int
    skipped: int
    attendee_id: UUID | None = None
    email_status: EmailStatus | None = None


@dataclass(frozen=True)
class BatchSummaryDTO:
    event_id: UUID
    total: int
    sent: int
    failed: int
    skipped: int
    cancelled: bool
    remaining_selection: list[UUID] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DispatchStatusDTO:
    event_id: UUID
    running: bool
    progress: BatchProgressDTO | None = None
    summary: BatchSummaryDTO | None = None
    error: str | None = None


@dataclass(frozen=True)
class RetryResultDTO:
    attendee_id: UUID
    success: bool
    email_status: EmailStatus
    error: str | None = None


@dataclass(frozen=True)
class CredentialPayloadDTO:
    prefix: str
    event_id: str
    attendee_id: str
    issued_at: str


@dataclass(frozen=True)
class CheckInResultDTO:
    success: bool
    already_checked_in: bool
    attendee_id: UUID
    resolved_name: str
    resolved_email: str
    checked_in_at: datetime | None
    adults: int = 1
    kids: int = 0
    adult_veg_meals: int = 0
    adult_non_veg_meals: int = 0
    kid_meals: int = 0

    @classmethod
    def from_attendee(cls, attendee: AttendeeDTO, already_checked_in: bool) -> "CheckInResultDTO":
        return cls(
            success=True,
            already_checked_in=already_checked_in,
            attendee_id=attendee.uuid,
            resolved_name=attendee.name,
            resolved_email=attendee.email,
            checked_in_at=attendee.checked_in_at,
            adults=attendee.adults,
            kids=attendee.kids,
            adult_veg_meals=attendee.adult_veg_meals,
            adult_non_veg_meals=attendee.adult_non_veg_meals,
            kid_meals=attendee.kid_meals,
        )


@dataclass(frozen=True)
class CheckInStatsDTO:
    total: int
    checked_in: int
    pending: int
    percentage_complete: int
    expected_headcount: int
    checked_in_headcount: int
