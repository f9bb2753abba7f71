"""Rate-limited, cancellable delivery of check-in QR codes.

A `DispatchQueue` walks an operator-supplied selection of attendees one at a
time, sending each its credential and recording the outcome on the attendee.
Sends are strictly sequential and separated by a fixed delay because the mail
provider's rate limit is per account. The `DispatchRegistry` owns one queue per
event and makes sure at most one run per event is active.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from uuid import UUID

from qrcheckin.config.settings import settings
from qrcheckin.email_service import CredentialEmail, EmailServiceBase
from qrcheckin.events.dtos import (
    AttendeeDTO,
    AttendeeNotFoundError,
    AttendeeNotSelectableError,
    BatchAlreadyRunningError,
    BatchProgressDTO,
    BatchSummaryDTO,
    DispatchStatusDTO,
    EmailStatus,
    EventDTO,
    EventNotFoundError,
    RetryResultDTO,
)
from qrcheckin.events.features.issue_credentials.issuer import data_url_to_png
from qrcheckin.events.repository.store import AttendeeStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgressDTO], Awaitable[None] | None]

EVENT_DATE_FORMAT = "%A, %B %d, %Y"


def not_selectable_reason(attendee: AttendeeDTO) -> str:
    if attendee.is_checked_in:
        return "already checked in"
    return f"email status is {attendee.email_status.value}"


class DispatchQueue:
    """Sequential sender for one event. Runs one batch at a time."""

    def __init__(
        self,
        store: AttendeeStore,
        email_service: EmailServiceBase,
        delay_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.email_service = email_service
        self.delay_seconds = settings.dispatch_delay_seconds if delay_seconds is None else delay_seconds
        self.clock = clock or (lambda: datetime.now(UTC))

        self._cancel_token = asyncio.Event()
        self._running = False
        self._progress: BatchProgressDTO | None = None
        self._summary: BatchSummaryDTO | None = None
        self._error: str | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_summary(self) -> BatchSummaryDTO | None:
        return self._summary

    @property
    def last_error(self) -> str | None:
        return self._error

    def snapshot(self) -> BatchProgressDTO | None:
        return self._progress

    def stop(self) -> None:
        """Request cancellation. Takes effect at the next iteration boundary."""
        if self._running:
            self._cancel_token.set()

    def reserve(self, event_id: UUID, clear_results: bool = True) -> None:
        """
        Mark the queue busy before the run itself is scheduled.

        A single retry reserves with `clear_results=False` so the last batch
        summary stays visible.
        """
        if self._running:
            raise BatchAlreadyRunningError(event_id)
        self._running = True
        self._cancel_token.clear()
        if clear_results:
            self._progress = None
            self._summary = None
            self._error = None

    def release(self) -> None:
        self._running = False
        self._cancel_token.clear()

    async def run(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummaryDTO:
        self.reserve(event_id)
        return await self.execute(event_id, attendee_ids, on_progress)

    async def execute(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummaryDTO:
        """Run a batch on a queue previously reserved with `reserve`."""
        try:
            summary = await self._run_batch(event_id, attendee_ids, on_progress)
        except Exception as e:
            self._error = str(e) or e.__class__.__name__
            raise
        finally:
            self.release()
        self._summary = summary
        return summary

    async def _run_batch(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None,
    ) -> BatchSummaryDTO:
        event = await self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        # Duplicates would be sent twice otherwise
        selection = list(dict.fromkeys(attendee_ids))
        total = len(selection)
        sent = failed = skipped = 0
        sent_ids: set[UUID] = set()
        errors: list[str] = []
        cancelled = False

        logger.info("Starting dispatch of %d credentials for event %s", total, event_id)
        await self._publish(on_progress, BatchProgressDTO(current=0, total=total, sent=0, failed=0, skipped=0))

        for index, attendee_id in enumerate(selection):
            if self._cancel_token.is_set():
                cancelled = True
                break

            # Re-read right before sending, a check-in may have happened meanwhile
            attendee = await self.store.get_attendee(attendee_id)
            attempted = False
            if attendee is None or attendee.event_id != event_id or not attendee.is_selectable:
                skipped += 1
                status = attendee.email_status if attendee else None
                logger.debug("Skipping attendee %s", attendee_id)
            else:
                attempted = True
                error = await self._deliver(event, attendee)
                if error is None:
                    sent += 1
                    sent_ids.add(attendee_id)
                    status = EmailStatus.SENT
                else:
                    failed += 1
                    errors.append(f"{attendee.name} ({attendee.email}): {error}")
                    status = EmailStatus.FAILED

            progress = BatchProgressDTO(
                current=index + 1,
                total=total,
                sent=sent,
                failed=failed,
                skipped=skipped,
                attendee_id=attendee_id,
                email_status=status,
            )
            await self._publish(on_progress, progress)

            if attempted and index < total - 1:
                await self._pause()

        summary = BatchSummaryDTO(
            event_id=event_id,
            total=total,
            sent=sent,
            failed=failed,
            skipped=skipped,
            cancelled=cancelled,
            remaining_selection=[attendee_id for attendee_id in selection if attendee_id not in sent_ids],
            errors=errors,
        )
        logger.info(
            "Dispatch for event %s finished: %d sent, %d failed, %d skipped%s",
            event_id,
            sent,
            failed,
            skipped,
            " (cancelled)" if cancelled else "",
        )
        return summary

    async def _publish(self, on_progress: ProgressCallback | None, progress: BatchProgressDTO) -> None:
        self._progress = progress
        if on_progress is None:
            return
        result = on_progress(progress)
        if inspect.isawaitable(result):
            await result

    async def _pause(self) -> None:
        """Wait out the inter-send delay, returning early if the run is stopped."""
        if self.delay_seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._cancel_token.wait(), timeout=self.delay_seconds)
        except asyncio.TimeoutError:
            pass

    async def _deliver(self, event: EventDTO, attendee: AttendeeDTO) -> str | None:
        """
        Send one credential and record the outcome on the attendee.

        Returns None on success or the failure reason. Channel failures are
        recorded, storage failures propagate.
        """
        error = None
        if not attendee.credential_image:
            error = "Attendee has no QR code"
        else:
            try:
                await self.email_service.send_credential(
                    CredentialEmail(
                        to_address=attendee.email,
                        attendee_name=attendee.name,
                        event_title=event.title,
                        event_date=event.date.strftime(EVENT_DATE_FORMAT),
                        event_location=event.location,
                        adults=attendee.adults,
                        kids=attendee.kids,
                        qr_png=data_url_to_png(attendee.credential_image),
                    )
                )
            except Exception as e:
                error = str(e) or e.__class__.__name__

        if error is None:
            await self.store.mark_email_sent(attendee.uuid, self.clock())
            logger.info("Sent QR code to %s", attendee.email)
        else:
            await self.store.mark_email_failed(attendee.uuid, error)
            logger.warning("Failed to send QR code to %s: %s", attendee.email, error)
        return error

    async def retry_single(self, attendee_id: UUID, force_retry: bool = False) -> RetryResultDTO:
        """One iteration of the batch loop for a single attendee, without delay."""
        attendee = await self.store.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFoundError(attendee_id)
        if not force_retry and not attendee.is_selectable:
            raise AttendeeNotSelectableError(attendee_id, not_selectable_reason(attendee))

        event = await self.store.get_event(attendee.event_id)
        if event is None:
            raise EventNotFoundError(attendee.event_id)

        error = await self._deliver(event, attendee)
        return RetryResultDTO(
            attendee_id=attendee_id,
            success=error is None,
            email_status=EmailStatus.SENT if error is None else EmailStatus.FAILED,
            error=error,
        )


class DispatchRegistry:
    """Process-wide owner of the dispatch queues, one per event."""

    def __init__(
        self,
        store: AttendeeStore,
        email_service: EmailServiceBase,
        delay_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.email_service = email_service
        self.delay_seconds = delay_seconds
        self.clock = clock
        self._queues: dict[UUID, DispatchQueue] = {}
        self._tasks: dict[UUID, asyncio.Task] = {}

    def queue_for(self, event_id: UUID) -> DispatchQueue:
        if event_id not in self._queues:
            self._queues[event_id] = DispatchQueue(
                store=self.store,
                email_service=self.email_service,
                delay_seconds=self.delay_seconds,
                clock=self.clock,
            )
        return self._queues[event_id]

    def is_running(self, event_id: UUID) -> bool:
        queue = self._queues.get(event_id)
        return queue is not None and queue.is_running

    async def run(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummaryDTO:
        """Run a batch to completion in the caller's task."""
        return await self.queue_for(event_id).run(event_id, attendee_ids, on_progress)

    def start(
        self,
        event_id: UUID,
        attendee_ids: Iterable[UUID],
        on_progress: ProgressCallback | None = None,
    ) -> asyncio.Task:
        """Schedule a batch in the background and return its task."""
        queue = self.queue_for(event_id)
        queue.reserve(event_id)
        selection = list(attendee_ids)
        started = False

        async def _execute() -> BatchSummaryDTO:
            nonlocal started
            started = True
            return await queue.execute(event_id, selection, on_progress)

        task = asyncio.create_task(_execute())
        self._tasks[event_id] = task
        task.add_done_callback(lambda done: self._on_task_done(event_id, queue, done, started))
        return task

    def _on_task_done(
        self, event_id: UUID, queue: DispatchQueue, task: asyncio.Task, started: bool
    ) -> None:
        if self._tasks.get(event_id) is task:
            del self._tasks[event_id]
        # execute() releases the queue itself; a task cancelled before it ran never did
        if not started:
            queue.release()
        if task.cancelled():
            logger.warning("Dispatch task for event %s was cancelled", event_id)
            return
        error = task.exception()
        if error is not None:
            logger.error("Dispatch for event %s aborted: %s", event_id, error, exc_info=error)

    def stop(self, event_id: UUID) -> bool:
        """Request cancellation of the event's active run. Returns whether one was active."""
        queue = self._queues.get(event_id)
        if queue is None or not queue.is_running:
            return False
        queue.stop()
        return True

    def status(self, event_id: UUID) -> DispatchStatusDTO:
        queue = self._queues.get(event_id)
        if queue is None:
            return DispatchStatusDTO(event_id=event_id, running=False)
        return DispatchStatusDTO(
            event_id=event_id,
            running=queue.is_running,
            progress=queue.snapshot(),
            summary=queue.last_summary,
            error=queue.last_error,
        )

    async def retry_single(self, attendee_id: UUID, force_retry: bool = False) -> RetryResultDTO:
        attendee = await self.store.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFoundError(attendee_id)
        # Holding the queue keeps a batch or a delete from starting mid-send
        queue = self.queue_for(attendee.event_id)
        queue.reserve(attendee.event_id, clear_results=False)
        try:
            return await queue.retry_single(attendee_id, force_retry)
        finally:
            queue.release()
