"""Operator-facing operations of the check-in pipeline.

Every operation takes the event id explicitly. Remembering the operator's last
event is left to the caller (see `ActiveEventState`).
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from qrcheckin.events.dtos import (
    AttendeeDTO,
    BatchAlreadyRunningError,
    BatchSummaryDTO,
    CheckInResultDTO,
    CheckInStatsDTO,
    ConfirmationRequiredError,
    DeletedEventDTO,
    DispatchStatusDTO,
    EventDTO,
    EventNotFoundError,
    ImportResultDTO,
    InvalidEventError,
    MalformedCredentialError,
    RetryResultDTO,
)
from qrcheckin.events.features.check_in.reconciler import CheckInReconciler
from qrcheckin.events.features.issue_credentials.issuer import CredentialIssuer
from qrcheckin.events.features.send_credentials.dispatch import DispatchRegistry, ProgressCallback
from qrcheckin.events.features.upload_attendees.importer import AttendeeImporter
from qrcheckin.events.features.upload_attendees.template import build_template_xlsx
from qrcheckin.events.repository.store import AttendeeStore

logger = logging.getLogger(__name__)


class EventCoordinator:
    def __init__(
        self,
        store: AttendeeStore,
        dispatch: DispatchRegistry,
        importer: AttendeeImporter | None = None,
        reconciler: CheckInReconciler | None = None,
    ) -> None:
        self.store = store
        self.dispatch = dispatch
        self.importer = importer or AttendeeImporter(store, CredentialIssuer(store))
        self.reconciler = reconciler or CheckInReconciler(store)

    async def require_event(self, event_id: UUID) -> EventDTO:
        event = await self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def create_event(
        self, title: str, date: datetime, location: str, description: str | None = None
    ) -> EventDTO:
        title = (title or "").strip()
        location = (location or "").strip()
        if not title or not location or date is None:
            raise InvalidEventError("Title, date, and location are required")

        event = await self.store.create_event(
            title=title,
            date=date,
            location=location,
            description=(description or "").strip() or None,
        )
        logger.info("Created event %s (%s)", event.title, event.uuid)
        return event

    async def list_events(self) -> list[EventDTO]:
        return await self.store.list_events()

    async def delete_event(self, event_id: UUID, confirmed: bool = False) -> DeletedEventDTO:
        """Delete an event with all its attendees. Needs explicit confirmation."""
        if not confirmed:
            raise ConfirmationRequiredError(
                "Deleting an event removes all its attendees and check-ins; confirmation required"
            )
        if self.dispatch.is_running(event_id):
            raise BatchAlreadyRunningError(event_id)

        deleted = await self.store.delete_event(event_id)
        logger.warning(
            "Deleted event %s with %d attendees and %d check-ins",
            event_id,
            deleted.deleted_attendee_count,
            deleted.deleted_check_in_count,
        )
        return deleted

    async def upload_attendees(self, event_id: UUID, filename: str, content: bytes) -> ImportResultDTO:
        return await self.importer.import_file(event_id, filename, content)

    async def upload_template(self, event_id: UUID) -> bytes:
        """Excel file with the columns `upload_attendees` understands and sample rows."""
        await self.require_event(event_id)
        return build_template_xlsx()

    async def list_attendees(self, event_id: UUID) -> list[AttendeeDTO]:
        await self.require_event(event_id)
        return await self.store.list_attendees(event_id)

    async def send_batch(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummaryDTO:
        await self.require_event(event_id)
        return await self.dispatch.run(event_id, attendee_ids, on_progress)

    async def start_batch(self, event_id: UUID, attendee_ids: Iterable[UUID]) -> DispatchStatusDTO:
        await self.require_event(event_id)
        self.dispatch.start(event_id, attendee_ids)
        return self.dispatch.status(event_id)

    async def batch_status(self, event_id: UUID) -> DispatchStatusDTO:
        await self.require_event(event_id)
        return self.dispatch.status(event_id)

    async def stop_batch(self, event_id: UUID) -> DispatchStatusDTO:
        await self.require_event(event_id)
        if self.dispatch.stop(event_id):
            logger.info("Stop requested for dispatch of event %s", event_id)
        return self.dispatch.status(event_id)

    async def retry_single(self, attendee_id: UUID, force_retry: bool = False) -> RetryResultDTO:
        return await self.dispatch.retry_single(attendee_id, force_retry)

    async def check_in(
        self,
        event_id: UUID,
        payload: str | None = None,
        email: str | None = None,
        checked_in_by: str | None = None,
    ) -> CheckInResultDTO:
        """Check in by scanned QR payload, or by email address when no payload is given."""
        await self.require_event(event_id)
        if payload and payload.strip():
            return await self.reconciler.check_in(event_id, payload, checked_in_by)
        if email and email.strip():
            return await self.reconciler.check_in_by_email(event_id, email, checked_in_by)
        raise MalformedCredentialError("No QR code or email address provided")

    async def verify(self, event_id: UUID, payload: str) -> AttendeeDTO:
        await self.require_event(event_id)
        return await self.reconciler.verify(event_id, payload)

    async def check_in_stats(self, event_id: UUID) -> CheckInStatsDTO:
        return await self.reconciler.stats(event_id)
