"""Tests for the event management endpoints."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.repository.tests.inmemory_models import (
    InMemoryAttendeeStore,
    build_inmemory_coordinator,
)
from qrcheckin.events.urls import EVENT_URL, EVENTS_URL, LIST_ATTENDEES_URL

EVENT_DATE = datetime(2026, 11, 8, 18, 0, tzinfo=UTC)
EVENT_BODY = {
    "title": "Diwali Night",
    "date": "2026-11-08T18:00:00+00:00",
    "location": "Community Hall",
}


def make_overrides():
    store = InMemoryAttendeeStore()
    coordinator = build_inmemory_coordinator(store)
    return store, coordinator, {get_event_coordinator: lambda: coordinator}


@pytest.mark.asyncio
async def test_create_and_list_events(client_factory):
    _, _, overrides = make_overrides()

    async with client_factory(overrides) as client:
        created = await client.post(EVENTS_URL, json=EVENT_BODY)
        listed = await client.get(EVENTS_URL)

    assert created.status_code == 201
    data = created.json()
    assert data["title"] == "Diwali Night"
    assert data["location"] == "Community Hall"
    assert data["description"] is None
    assert [event["uuid"] for event in listed.json()] == [data["uuid"]]


@pytest.mark.asyncio
async def test_create_event_missing_location(client_factory):
    _, _, overrides = make_overrides()

    async with client_factory(overrides) as client:
        missing = await client.post(EVENTS_URL, json={"title": "Diwali", "date": "2026-11-08"})
        blank = await client.post(EVENTS_URL, json={**EVENT_BODY, "location": " "})

    assert missing.status_code == 422
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Title, date, and location are required"


@pytest.mark.asyncio
async def test_delete_event_requires_confirm(client_factory):
    store, coordinator, overrides = make_overrides()
    event = await coordinator.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    await coordinator.upload_attendees(event.uuid, "a.csv", b"name,email\nAsha Rao,asha@example.com\n")

    async with client_factory(overrides) as client:
        refused = await client.delete(EVENT_URL.format(event_id=event.uuid))
        deleted = await client.delete(EVENT_URL.format(event_id=event.uuid), params={"confirm": "true"})
        again = await client.delete(EVENT_URL.format(event_id=event.uuid), params={"confirm": "true"})

    assert refused.status_code == 400
    assert deleted.status_code == 200
    assert deleted.json() == {
        "event_id": str(event.uuid),
        "deleted_attendee_count": 1,
        "deleted_check_in_count": 0,
    }
    assert again.status_code == 404
    assert store.events == {}


@pytest.mark.asyncio
async def test_list_attendees(client_factory):
    _, coordinator, overrides = make_overrides()
    event = await coordinator.create_event("Diwali Night", EVENT_DATE, "Community Hall")
    await coordinator.upload_attendees(
        event.uuid, "a.csv", b"name,email,adults,kids\nAsha Rao,asha@example.com,2,1\n"
    )

    async with client_factory(overrides) as client:
        response = await client.get(LIST_ATTENDEES_URL.format(event_id=event.uuid))
        unknown = await client.get(LIST_ATTENDEES_URL.format(event_id=uuid4()))

    assert response.status_code == 200
    [attendee] = response.json()
    assert attendee["name"] == "Asha Rao"
    assert attendee["email_status"] == "PENDING"
    assert attendee["is_checked_in"] is False
    assert (attendee["adults"], attendee["kids"]) == (2, 1)
    assert attendee["credential_token"].startswith(f"JTM-EVENT:{event.uuid}:")
    assert unknown.status_code == 404
