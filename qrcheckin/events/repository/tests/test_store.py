"""Tests for the SQL attendee store against the test database."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from qrcheckin.events.dtos import AttendeeNotFoundError, AttendeeRowDTO, EmailStatus, EventNotFoundError
from qrcheckin.events.repository.store import SqlAttendeeStore

EVENT_DATE = datetime(2026, 11, 8, 18, 0, tzinfo=UTC)


async def create_attendee(store, event_id, name="Asha Rao", email="asha@example.com", **row):
    user_id = await store.get_or_create_person(email, name)
    attendee, _ = await store.get_or_create_attendee(
        event_id, user_id, AttendeeRowDTO(name=name, email=email, **row)
    )
    return attendee


@pytest.mark.asyncio
async def test_create_list_and_get_events(database):
    store = SqlAttendeeStore()

    holi = await store.create_event("Holi", datetime(2026, 3, 1, tzinfo=UTC), "Park")
    diwali = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall", "Bring family")

    assert [event.uuid for event in await store.list_events()] == [diwali.uuid, holi.uuid]
    fetched = await store.get_event(diwali.uuid)
    assert fetched.title == "Diwali Night"
    assert fetched.description == "Bring family"
    assert await store.get_event(uuid4()) is None


@pytest.mark.asyncio
async def test_get_or_create_person_ignores_email_case(database):
    store = SqlAttendeeStore()

    first = await store.get_or_create_person("Asha@Example.com", "Asha Rao")
    second = await store.get_or_create_person("asha@example.com", "A. Rao")

    assert first == second


@pytest.mark.asyncio
async def test_get_or_create_attendee_keeps_existing(database):
    store = SqlAttendeeStore()
    event = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    user_id = await store.get_or_create_person("asha@example.com", "Asha Rao")

    created, was_created = await store.get_or_create_attendee(
        event.uuid, user_id, AttendeeRowDTO(name="Asha Rao", email="asha@example.com", adults=2)
    )
    again, created_again = await store.get_or_create_attendee(
        event.uuid, user_id, AttendeeRowDTO(name="Asha R", email="asha@example.com", adults=5)
    )

    assert (was_created, created_again) == (True, False)
    assert again.uuid == created.uuid
    assert (again.name, again.adults) == ("Asha Rao", 2)
    assert again.email_status == EmailStatus.PENDING
    assert again.is_checked_in is False


@pytest.mark.asyncio
async def test_same_person_attends_two_events(database):
    store = SqlAttendeeStore()
    diwali = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    holi = await store.create_event("Holi", datetime(2026, 3, 1, tzinfo=UTC), "Park")

    first = await create_attendee(store, diwali.uuid)
    second = await create_attendee(store, holi.uuid)

    assert first.user_id == second.user_id
    assert first.uuid != second.uuid
    assert [a.uuid for a in await store.list_attendees(holi.uuid)] == [second.uuid]


@pytest.mark.asyncio
async def test_set_credential_if_missing_keeps_first(database):
    store = SqlAttendeeStore()
    event = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    attendee = await create_attendee(store, event.uuid)

    first = await store.set_credential_if_missing(attendee.uuid, "JTM-EVENT:a:b:1", "data:image/png;base64,AA")
    second = await store.set_credential_if_missing(attendee.uuid, "JTM-EVENT:a:b:2", "data:image/png;base64,BB")

    assert first.credential_token == "JTM-EVENT:a:b:1"
    assert second.credential_token == "JTM-EVENT:a:b:1"
    assert second.credential_image == "data:image/png;base64,AA"
    found = await store.find_attendee_by_credential("JTM-EVENT:a:b:1")
    assert found.uuid == attendee.uuid
    assert await store.find_attendee_by_credential("JTM-EVENT:a:b:2") is None


@pytest.mark.asyncio
async def test_email_outcomes(database):
    store = SqlAttendeeStore()
    event = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    attendee = await create_attendee(store, event.uuid)

    await store.mark_email_failed(attendee.uuid, "Mailbox unavailable")
    failed = await store.mark_email_failed(attendee.uuid, "Mailbox still unavailable")
    sent = await store.mark_email_sent(attendee.uuid, datetime.now(UTC))

    assert failed.email_status == EmailStatus.FAILED
    assert failed.email_retry_count == 2
    assert failed.last_error_message == "Mailbox still unavailable"
    assert sent.email_status == EmailStatus.SENT
    assert sent.email_sent_at is not None
    assert sent.last_error_message is None
    assert sent.email_retry_count == 2


@pytest.mark.asyncio
async def test_mark_checked_in_only_once(database):
    store = SqlAttendeeStore()
    event = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    attendee = await create_attendee(store, event.uuid)

    first, changed = await store.mark_checked_in(
        attendee.uuid, datetime(2026, 11, 8, 18, 5, tzinfo=UTC), "door 1"
    )
    second, changed_again = await store.mark_checked_in(
        attendee.uuid, datetime(2026, 11, 8, 19, 0, tzinfo=UTC), "door 2"
    )

    assert (changed, changed_again) == (True, False)
    assert second.is_checked_in is True
    assert second.checked_in_at == first.checked_in_at
    assert second.checked_in_by == "door 1"


@pytest.mark.asyncio
async def test_mark_unknown_attendee(database):
    store = SqlAttendeeStore()

    with pytest.raises(AttendeeNotFoundError):
        await store.mark_checked_in(uuid4(), datetime.now(UTC))


@pytest.mark.asyncio
async def test_find_attendee_by_email_scoped_to_event(database):
    store = SqlAttendeeStore()
    diwali = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    holi = await store.create_event("Holi", datetime(2026, 3, 1, tzinfo=UTC), "Park")
    attendee = await create_attendee(store, diwali.uuid)

    found = await store.find_attendee_by_email(diwali.uuid, "  ASHA@example.com ")

    assert found.uuid == attendee.uuid
    assert await store.find_attendee_by_email(holi.uuid, "asha@example.com") is None


@pytest.mark.asyncio
async def test_delete_event_removes_attendees(database):
    store = SqlAttendeeStore()
    diwali = await store.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    holi = await store.create_event("Holi", datetime(2026, 3, 1, tzinfo=UTC), "Park")
    asha = await create_attendee(store, diwali.uuid)
    await create_attendee(store, diwali.uuid, name="Ravi Kumar", email="ravi@example.com")
    kept = await create_attendee(store, holi.uuid)
    await store.mark_checked_in(asha.uuid, datetime.now(UTC))

    deleted = await store.delete_event(diwali.uuid)

    assert (deleted.deleted_attendee_count, deleted.deleted_check_in_count) == (2, 1)
    assert await store.get_event(diwali.uuid) is None
    assert await store.get_attendee(asha.uuid) is None
    assert await store.get_attendee(kept.uuid) is not None
    with pytest.raises(EventNotFoundError):
        await store.delete_event(diwali.uuid)
