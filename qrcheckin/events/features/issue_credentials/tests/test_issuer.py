"""Tests for credential issuance and payload parsing."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from qrcheckin.events.dtos import AttendeeNotFoundError, AttendeeRowDTO, MalformedCredentialError
from qrcheckin.events.features.issue_credentials.issuer import (
    CredentialIssuer,
    build_payload,
    data_url_to_png,
    parse_payload,
)
from qrcheckin.events.repository.tests.inmemory_models import InMemoryAttendeeStore

ISSUED_AT = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)


async def create_attendee(store: InMemoryAttendeeStore):
    event = await store.create_event("Diwali Night", ISSUED_AT, "Community Hall")
    user_id = await store.get_or_create_person("asha@example.com", "Asha Rao")
    attendee, _ = await store.get_or_create_attendee(
        event.uuid, user_id, AttendeeRowDTO(name="Asha Rao", email="asha@example.com")
    )
    return event, attendee


def test_build_payload_has_four_fields():
    event_id = "5f0c6a4e-0000-4000-8000-000000000001"
    attendee_id = "5f0c6a4e-0000-4000-8000-000000000002"

    payload = build_payload("JTM-EVENT", event_id, attendee_id, ISSUED_AT)

    assert payload == f"JTM-EVENT:{event_id}:{attendee_id}:1700000000000"


def test_parse_payload_returns_fields():
    parsed = parse_payload("JTM-EVENT:evt1:userA:170000", "JTM-EVENT")

    assert parsed.event_id == "evt1"
    assert parsed.attendee_id == "userA"
    assert parsed.issued_at == "170000"


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "JTM-EVENT:evt1:userA",
        "JTM-EVENT:evt1:userA:170000:extra",
        "OTHER:evt1:userA:170000",
        "JTM-EVENT::userA:170000",
        "https://example.com/ticket",
    ],
)
def test_parse_payload_rejects_malformed(payload):
    with pytest.raises(MalformedCredentialError) as exc_info:
        parse_payload(payload, "JTM-EVENT")

    assert str(exc_info.value) == "Invalid QR code format"
    assert exc_info.value.code == "malformed"


@pytest.mark.asyncio
async def test_ensure_credential_is_idempotent():
    store = InMemoryAttendeeStore()
    event, attendee = await create_attendee(store)
    issuer = CredentialIssuer(store, prefix="JTM-EVENT", clock=lambda: ISSUED_AT)

    first = await issuer.ensure_credential(attendee.uuid)
    # A later clock would produce a different token if one were issued again
    issuer.clock = lambda: datetime(2024, 1, 1, tzinfo=UTC)
    second = await issuer.ensure_credential(attendee.uuid)

    assert first == second
    assert first == f"JTM-EVENT:{event.uuid}:{attendee.uuid}:1700000000000"


@pytest.mark.asyncio
async def test_ensure_credential_stores_png_image():
    store = InMemoryAttendeeStore()
    _, attendee = await create_attendee(store)
    issuer = CredentialIssuer(store, clock=lambda: ISSUED_AT)

    token = await issuer.ensure_credential(attendee.uuid)

    stored = await store.get_attendee(attendee.uuid)
    assert stored.credential_token == token
    assert stored.credential_image.startswith("data:image/png;base64,")
    assert data_url_to_png(stored.credential_image).startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_ensure_credential_unknown_attendee():
    store = InMemoryAttendeeStore()
    issuer = CredentialIssuer(store)

    with pytest.raises(AttendeeNotFoundError):
        await issuer.ensure_credential(uuid4())


class StaleReadStore(InMemoryAttendeeStore):
    """Returns the attendee as it was before another issuer stored a credential."""

    def __init__(self):
        super().__init__()
        self.stale = {}

    async def get_attendee(self, attendee_id):
        if attendee_id in self.stale:
            return self.stale[attendee_id]
        return await super().get_attendee(attendee_id)


@pytest.mark.asyncio
async def test_concurrent_issuance_keeps_first_credential():
    store = StaleReadStore()
    _, attendee = await create_attendee(store)
    store.stale[attendee.uuid] = attendee
    await store.set_credential_if_missing(attendee.uuid, "JTM-EVENT:first:one:1", "data:image/png;base64,")

    issuer = CredentialIssuer(store, clock=lambda: ISSUED_AT)
    token = await issuer.ensure_credential(attendee.uuid)

    assert token == "JTM-EVENT:first:one:1"
    assert store.attendees[attendee.uuid].credential_token == "JTM-EVENT:first:one:1"
