"""Tests for the attendee upload endpoint."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from qrcheckin.events.dependencies import get_event_coordinator
from qrcheckin.events.features.upload_attendees.template import XLSX_MEDIA_TYPE
from qrcheckin.events.repository.tests.inmemory_models import (
    InMemoryAttendeeStore,
    build_inmemory_coordinator,
)
from qrcheckin.events.urls import UPLOAD_ATTENDEES_URL, UPLOAD_TEMPLATE_URL


async def setup_event():
    store = InMemoryAttendeeStore()
    event = await store.create_event("Diwali Night", datetime(2026, 11, 8, tzinfo=UTC), "Community Hall")
    coordinator = build_inmemory_coordinator(store)
    return store, event, {get_event_coordinator: lambda: coordinator}


@pytest.mark.asyncio
async def test_upload_csv(client_factory):
    store, event, overrides = await setup_event()
    content = b"name,email\nAsha Rao,\nRavi Kumar,ravi@example.com\n"

    async with client_factory(overrides) as client:
        response = await client.post(
            UPLOAD_ATTENDEES_URL.format(event_id=event.uuid),
            files={"file": ("attendees.csv", content, "text/csv")},
        )

    assert response.status_code == 200
    assert response.json() == {
        "success_count": 1,
        "failed_count": 1,
        "errors": ["Row 1: Missing required fields (name, email)"],
    }
    assert len(await store.list_attendees(event.uuid)) == 1


@pytest.mark.asyncio
async def test_upload_unsupported_file_type(client_factory):
    _, event, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(
            UPLOAD_ATTENDEES_URL.format(event_id=event.uuid),
            files={"file": ("attendees.txt", b"hello", "text/plain")},
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid file type. Use CSV or Excel."


@pytest.mark.asyncio
async def test_upload_to_unknown_event(client_factory):
    _, _, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(
            UPLOAD_ATTENDEES_URL.format(event_id=uuid4()),
            files={"file": ("attendees.csv", b"name,email\nA,a@example.com\n", "text/csv")},
        )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_upload_without_file(client_factory):
    _, event, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.post(UPLOAD_ATTENDEES_URL.format(event_id=event.uuid))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_download_template(client_factory):
    _, event, overrides = await setup_event()

    async with client_factory(overrides) as client:
        response = await client.get(UPLOAD_TEMPLATE_URL.format(event_id=event.uuid))
        unknown = await client.get(UPLOAD_TEMPLATE_URL.format(event_id=uuid4()))

    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "attendee-upload-template.xlsx" in response.headers["content-disposition"]
    assert response.content.startswith(b"PK")
    assert unknown.status_code == 404
