"""Durable record of check-in events and their attendees.

Every operation is a short, self-contained unit of work. Mutations of the
dispatch fields and of the check-in fields are single-row UPDATE statements
touching disjoint columns, so the dispatch queue and the check-in reconciler
can work on the same attendee without any further locking.
"""

import abc
from datetime import datetime
from functools import partial
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.config.database import async_session_manager
from qrcheckin.events.dtos import (
    AttendeeDTO,
    AttendeeNotFoundError,
    AttendeeRowDTO,
    DeletedEventDTO,
    EmailStatus,
    EventDTO,
    EventNotFoundError,
)
from qrcheckin.events.repository.orm_models import Attendee, CheckInEvent
from qrcheckin.models.user import User


class AttendeeStore(abc.ABC):
    @abc.abstractmethod
    async def create_event(
        self, title: str, date: datetime, location: str, description: str | None = None
    ) -> EventDTO:
        raise NotImplementedError

    @abc.abstractmethod
    async def list_events(self) -> list[EventDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_event(self, event_id: UUID) -> EventDTO | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_event(self, event_id: UUID) -> DeletedEventDTO:
        """Delete an event together with its attendees and their check-ins."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_or_create_person(self, email: str, name: str, phone: str | None = None) -> UUID:
        """Return the id of the person owning `email`, creating a minimal record if needed."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_or_create_attendee(
        self, event_id: UUID, user_id: UUID, row: AttendeeRowDTO
    ) -> tuple[AttendeeDTO, bool]:
        """
        Return the attendee for (event, person) and whether it was just created.
        An existing attendee is returned untouched.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_attendee(self, attendee_id: UUID) -> AttendeeDTO | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def list_attendees(self, event_id: UUID) -> list[AttendeeDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    async def find_attendee_by_credential(self, token: str) -> AttendeeDTO | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def find_attendee_by_email(self, event_id: UUID, email: str) -> AttendeeDTO | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def set_credential_if_missing(
        self, attendee_id: UUID, token: str, image: str
    ) -> AttendeeDTO:
        """Store a credential unless one is already present; return the stored state."""
        raise NotImplementedError

    @abc.abstractmethod
    async def mark_email_sent(self, attendee_id: UUID, sent_at: datetime) -> AttendeeDTO:
        raise NotImplementedError

    @abc.abstractmethod
    async def mark_email_failed(self, attendee_id: UUID, error_message: str) -> AttendeeDTO:
        raise NotImplementedError

    @abc.abstractmethod
    async def mark_checked_in(
        self, attendee_id: UUID, checked_in_at: datetime, checked_in_by: str | None = None
    ) -> tuple[AttendeeDTO, bool]:
        """
        Check the attendee in unless already done.
        Returns the stored state and whether this call performed the transition.
        """
        raise NotImplementedError


def to_event_dto(event: CheckInEvent) -> EventDTO:
    return EventDTO(
        uuid=event.uuid,
        title=event.title,
        date=event.date,
        location=event.location,
        description=event.description,
    )


def to_attendee_dto(attendee: Attendee) -> AttendeeDTO:
    return AttendeeDTO(
        uuid=attendee.uuid,
        event_id=attendee.event_id,
        user_id=attendee.user_id,
        name=attendee.name,
        email=attendee.email,
        phone=attendee.phone,
        adults=attendee.adults,
        kids=attendee.kids,
        adult_veg_meals=attendee.adult_veg_meals,
        adult_non_veg_meals=attendee.adult_non_veg_meals,
        kid_meals=attendee.kid_meals,
        email_status=EmailStatus(attendee.email_status),
        email_sent_at=attendee.email_sent_at,
        email_retry_count=attendee.email_retry_count,
        last_error_message=attendee.last_error_message,
        is_checked_in=attendee.is_checked_in,
        checked_in_at=attendee.checked_in_at,
        checked_in_by=attendee.checked_in_by,
        credential_token=attendee.credential_token,
        credential_image=attendee.credential_image,
    )


class SqlAttendeeStore(AttendeeStore):
    """SQL implementation of the attendee store."""

    async_session_manager = staticmethod(partial(async_session_manager))

    def __init__(self, session_overwrite: AsyncSession | None = None) -> None:
        self.session_overwrite = session_overwrite

    def _session(self):
        return self.async_session_manager(session_overwrite=self.session_overwrite)

    async def _load_attendee(self, session, attendee_id: UUID) -> Attendee | None:
        # populate_existing: rows may have been changed by UPDATE statements in this session
        stmt = (
            select(Attendee)
            .where(Attendee.uuid == attendee_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _require_attendee(self, session, attendee_id: UUID) -> Attendee:
        attendee = await self._load_attendee(session, attendee_id)
        if attendee is None:
            raise AttendeeNotFoundError(attendee_id)
        return attendee

    async def create_event(
        self, title: str, date: datetime, location: str, description: str | None = None
    ) -> EventDTO:
        async with self._session() as session:
            event = CheckInEvent(
                title=title,
                date=date,
                location=location,
                description=description,
            )
            session.add(event)
            await session.flush()
            return to_event_dto(event)

    async def list_events(self) -> list[EventDTO]:
        async with self._session() as session:
            result = await session.execute(select(CheckInEvent).order_by(CheckInEvent.date.desc()))
            return [to_event_dto(event) for event in result.scalars().all()]

    async def get_event(self, event_id: UUID) -> EventDTO | None:
        async with self._session() as session:
            event = await session.get(CheckInEvent, event_id)
            return to_event_dto(event) if event else None

    async def delete_event(self, event_id: UUID) -> DeletedEventDTO:
        async with self._session() as session:
            event = await session.get(CheckInEvent, event_id)
            if event is None:
                raise EventNotFoundError(event_id)

            attendee_count = await session.scalar(
                select(func.count()).select_from(Attendee).where(Attendee.event_id == event_id)
            )
            check_in_count = await session.scalar(
                select(func.count())
                .select_from(Attendee)
                .where(Attendee.event_id == event_id, Attendee.is_checked_in.is_(True))
            )

            await session.execute(
                delete(Attendee)
                .where(Attendee.event_id == event_id)
                .execution_options(synchronize_session=False)
            )
            await session.delete(event)
            await session.flush()

            return DeletedEventDTO(
                event_id=event_id,
                deleted_attendee_count=attendee_count or 0,
                deleted_check_in_count=check_in_count or 0,
            )

    async def get_or_create_person(self, email: str, name: str, phone: str | None = None) -> UUID:
        async with self._session() as session:
            result = await session.execute(
                select(User).where(func.lower(User.email) == email.lower())
            )
            user = result.scalar_one_or_none()
            if user is not None:
                return user.uuid

            user = User(email=email, full_name=name, phone=phone, is_active=True)
            session.add(user)
            await session.flush()
            return user.uuid

    async def get_or_create_attendee(
        self, event_id: UUID, user_id: UUID, row: AttendeeRowDTO
    ) -> tuple[AttendeeDTO, bool]:
        async with self._session() as session:
            result = await session.execute(
                select(Attendee).where(Attendee.event_id == event_id, Attendee.user_id == user_id)
            )
            attendee = result.scalar_one_or_none()
            if attendee is not None:
                return to_attendee_dto(attendee), False

            attendee = Attendee(
                event_id=event_id,
                user_id=user_id,
                name=row.name,
                email=row.email,
                phone=row.phone,
                adults=row.adults,
                kids=row.kids,
                adult_veg_meals=row.adult_veg_meals,
                adult_non_veg_meals=row.adult_non_veg_meals,
                kid_meals=row.kid_meals,
                email_status=EmailStatus.PENDING,
                email_retry_count=0,
                is_checked_in=False,
            )
            session.add(attendee)
            await session.flush()
            return to_attendee_dto(attendee), True

    async def get_attendee(self, attendee_id: UUID) -> AttendeeDTO | None:
        async with self._session() as session:
            attendee = await self._load_attendee(session, attendee_id)
            return to_attendee_dto(attendee) if attendee else None

    async def list_attendees(self, event_id: UUID) -> list[AttendeeDTO]:
        async with self._session() as session:
            stmt = (
                select(Attendee)
                .where(Attendee.event_id == event_id)
                .order_by(Attendee.created_at, Attendee.name)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            return [to_attendee_dto(attendee) for attendee in result.scalars().all()]

    async def find_attendee_by_credential(self, token: str) -> AttendeeDTO | None:
        async with self._session() as session:
            stmt = (
                select(Attendee)
                .where(Attendee.credential_token == token)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            attendee = result.scalar_one_or_none()
            return to_attendee_dto(attendee) if attendee else None

    async def find_attendee_by_email(self, event_id: UUID, email: str) -> AttendeeDTO | None:
        async with self._session() as session:
            stmt = (
                select(Attendee)
                .where(
                    Attendee.event_id == event_id,
                    func.lower(Attendee.email) == email.strip().lower(),
                )
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            attendee = result.scalars().first()
            return to_attendee_dto(attendee) if attendee else None

    async def set_credential_if_missing(
        self, attendee_id: UUID, token: str, image: str
    ) -> AttendeeDTO:
        async with self._session() as session:
            await session.execute(
                update(Attendee)
                .where(Attendee.uuid == attendee_id, Attendee.credential_token.is_(None))
                .values(credential_token=token, credential_image=image)
                .execution_options(synchronize_session=False)
            )
            attendee = await self._require_attendee(session, attendee_id)
            return to_attendee_dto(attendee)

    async def mark_email_sent(self, attendee_id: UUID, sent_at: datetime) -> AttendeeDTO:
        async with self._session() as session:
            await session.execute(
                update(Attendee)
                .where(Attendee.uuid == attendee_id)
                .values(
                    email_status=EmailStatus.SENT,
                    email_sent_at=sent_at,
                    last_error_message=None,
                )
                .execution_options(synchronize_session=False)
            )
            attendee = await self._require_attendee(session, attendee_id)
            return to_attendee_dto(attendee)

    async def mark_email_failed(self, attendee_id: UUID, error_message: str) -> AttendeeDTO:
        async with self._session() as session:
            await session.execute(
                update(Attendee)
                .where(Attendee.uuid == attendee_id)
                .values(
                    email_status=EmailStatus.FAILED,
                    last_error_message=error_message,
                    email_retry_count=Attendee.email_retry_count + 1,
                )
                .execution_options(synchronize_session=False)
            )
            attendee = await self._require_attendee(session, attendee_id)
            return to_attendee_dto(attendee)

    async def mark_checked_in(
        self, attendee_id: UUID, checked_in_at: datetime, checked_in_by: str | None = None
    ) -> tuple[AttendeeDTO, bool]:
        async with self._session() as session:
            result = await session.execute(
                update(Attendee)
                .where(Attendee.uuid == attendee_id, Attendee.is_checked_in.is_(False))
                .values(
                    is_checked_in=True,
                    checked_in_at=checked_in_at,
                    checked_in_by=checked_in_by,
                )
                .execution_options(synchronize_session=False)
            )
            attendee = await self._require_attendee(session, attendee_id)
            return to_attendee_dto(attendee), result.rowcount == 1
