"""Tests for the check-in endpoints."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.dtos import AttendeeRowDTO
from qrcheckin.events.features.issue_credentials.issuer import CredentialIssuer
from qrcheckin.events.repository.tests.inmemory_models import (
    InMemoryAttendeeStore,
    build_inmemory_coordinator,
)
from qrcheckin.events.urls import CHECK_IN_STATS_URL, CHECK_IN_URL, VERIFY_URL


async def setup_event():
    store = InMemoryAttendeeStore()
    event = await store.create_event("Diwali Night", datetime(2026, 11, 8, tzinfo=UTC), "Community Hall")
    user_id = await store.get_or_create_person("asha@example.com", "Asha Rao")
    attendee, _ = await store.get_or_create_attendee(
        event.uuid, user_id, AttendeeRowDTO(name="Asha Rao", email="asha@example.com", adults=2)
    )
    token = await CredentialIssuer(store).ensure_credential(attendee.uuid)
    coordinator = build_inmemory_coordinator(store)
    return store, event, attendee, token, {get_event_coordinator: lambda: coordinator}


@pytest.mark.asyncio
async def test_check_in_twice(client_factory):
    _, event, attendee, token, overrides = await setup_event()
    url = CHECK_IN_URL.format(event_id=event.uuid)

    async with client_factory(overrides) as client:
        first = await client.post(url, json={"payload": token, "checked_in_by": "door 1"})
        second = await client.post(url, json={"payload": token})

    assert first.status_code == 200
    assert first.json()["already_checked_in"] is False
    assert first.json()["attendee_id"] == str(attendee.uuid)
    assert first.json()["resolved_name"] == "Asha Rao"
    assert first.json()["adults"] == 2
    assert second.status_code == 200
    assert second.json()["already_checked_in"] is True
    assert second.json()["checked_in_at"] == first.json()["checked_in_at"]


@pytest.mark.asyncio
async def test_check_in_by_email(client_factory):
    _, event, _, _, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(
            CHECK_IN_URL.format(event_id=event.uuid), json={"email": "asha@example.com"}
        )

    assert response.status_code == 200
    assert response.json()["resolved_email"] == "asha@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, code",
    [
        ("not a qr code", "malformed"),
        ("JTM-EVENT:evt1:userA:170000", "wrong_event"),
    ],
)
async def test_rejected_credentials(client_factory, payload, code):
    _, event, _, _, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(CHECK_IN_URL.format(event_id=event.uuid), json={"payload": payload})

    assert response.status_code == 400
    assert response.json()["code"] == code


@pytest.mark.asyncio
async def test_unknown_attendee(client_factory):
    _, event, _, _, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(
            CHECK_IN_URL.format(event_id=event.uuid),
            json={"payload": f"JTM-EVENT:{event.uuid}:{uuid4()}:170000"},
        )

    assert response.status_code == 400
    assert response.json() == {
        "detail": "Attendee not registered for this event",
        "code": "unknown_attendee",
    }


@pytest.mark.asyncio
async def test_check_in_without_payload_or_email(client_factory):
    _, event, _, _, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(CHECK_IN_URL.format(event_id=event.uuid), json={})

    assert response.status_code == 400
    assert response.json()["code"] == "malformed"


@pytest.mark.asyncio
async def test_check_in_unknown_event(client_factory):
    _, _, _, token, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(CHECK_IN_URL.format(event_id=uuid4()), json={"payload": token})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_verify_and_stats(client_factory):
    store, event, attendee, token, overrides = await setup_event()

    async with client_factory(overrides) as client:
        verify = await client.post(VERIFY_URL.format(event_id=event.uuid), json={"payload": token})
        stats_before = await client.get(CHECK_IN_STATS_URL.format(event_id=event.uuid))
        await client.post(CHECK_IN_URL.format(event_id=event.uuid), json={"payload": token})
        stats_after = await client.get(CHECK_IN_STATS_URL.format(event_id=event.uuid))

    assert verify.status_code == 200
    assert verify.json()["uuid"] == str(attendee.uuid)
    assert verify.json()["is_checked_in"] is False
    assert stats_before.json()["checked_in"] == 0
    assert stats_after.json() == {
        "total": 1,
        "checked_in": 1,
        "pending": 0,
        "percentage_complete": 100,
        "expected_headcount": 2,
        "checked_in_headcount": 2,
    }
