"""Venue check-in against scanned QR codes or typed email addresses."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

from qrcheckin.config.settings import settings
from qrcheckin.events.dtos import (
    AttendeeDTO,
    CheckInResultDTO,
    CheckInStatsDTO,
    EventNotFoundError,
    UnknownAttendeeError,
    WrongEventError,
)
from qrcheckin.events.features.issue_credentials.issuer import parse_payload
from qrcheckin.events.repository.store import AttendeeStore

logger = logging.getLogger(__name__)


class CheckInReconciler:
    def __init__(
        self,
        store: AttendeeStore,
        prefix: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.prefix = prefix or settings.credential_prefix
        self.clock = clock or (lambda: datetime.now(UTC))

    async def resolve(self, event_id: UUID | None, payload: str) -> AttendeeDTO:
        """
        Validate a scanned payload and return the attendee it belongs to.

        Checks run in a fixed order so the operator can tell a bad QR code from
        one issued for another event from one nobody is registered under:
        malformed, then wrong event, then unknown attendee.
        """
        parsed = parse_payload(payload, self.prefix)
        if event_id is not None and parsed.event_id != str(event_id):
            raise WrongEventError(parsed.event_id, event_id)

        attendee = await self.store.find_attendee_by_credential(payload.strip())
        if attendee is None:
            raise UnknownAttendeeError()
        if event_id is not None and attendee.event_id != event_id:
            raise UnknownAttendeeError()
        return attendee

    async def verify(self, event_id: UUID | None, payload: str) -> AttendeeDTO:
        """Same validation as check_in, without changing anything."""
        return await self.resolve(event_id, payload)

    async def check_in(
        self, event_id: UUID | None, payload: str, checked_in_by: str | None = None
    ) -> CheckInResultDTO:
        attendee = await self.resolve(event_id, payload)
        return await self._transition(attendee, checked_in_by)

    async def check_in_by_email(
        self, event_id: UUID, email: str, checked_in_by: str | None = None
    ) -> CheckInResultDTO:
        attendee = await self.store.find_attendee_by_email(event_id, email)
        if attendee is None:
            raise UnknownAttendeeError()
        return await self._transition(attendee, checked_in_by)

    async def _transition(self, attendee: AttendeeDTO, checked_in_by: str | None) -> CheckInResultDTO:
        stored, newly_checked_in = await self.store.mark_checked_in(
            attendee.uuid, self.clock(), checked_in_by
        )
        if newly_checked_in:
            logger.info("Checked in %s (%s)", stored.name, stored.email)
        else:
            logger.info("%s (%s) was already checked in", stored.name, stored.email)
        return CheckInResultDTO.from_attendee(stored, already_checked_in=not newly_checked_in)

    async def stats(self, event_id: UUID) -> CheckInStatsDTO:
        if await self.store.get_event(event_id) is None:
            raise EventNotFoundError(event_id)

        attendees = await self.store.list_attendees(event_id)
        checked_in = [attendee for attendee in attendees if attendee.is_checked_in]
        total = len(attendees)
        return CheckInStatsDTO(
            total=total,
            checked_in=len(checked_in),
            pending=total - len(checked_in),
            percentage_complete=round(len(checked_in) / total * 100) if total else 0,
            expected_headcount=sum(attendee.headcount for attendee in attendees),
            checked_in_headcount=sum(attendee.headcount for attendee in checked_in),
        )
