"""Scannable check-in credentials.

A credential is the string ``<prefix>:<eventId>:<attendeeId>:<issuedAtMillis>``
rendered into a QR code. It is issued once per attendee and never rotated.
"""

import base64
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from io import BytesIO
from uuid import UUID

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from qrcheckin.config.settings import settings
from qrcheckin.events.dtos import (
    AttendeeNotFoundError,
    CredentialPayloadDTO,
    MalformedCredentialError,
)
from qrcheckin.events.repository.store import AttendeeStore

logger = logging.getLogger(__name__)

PAYLOAD_SEPARATOR = ":"
PAYLOAD_FIELD_COUNT = 4
PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def build_payload(prefix: str, event_id: UUID, attendee_id: UUID, issued_at: datetime) -> str:
    timestamp = int(issued_at.timestamp() * 1000)
    return PAYLOAD_SEPARATOR.join([prefix, str(event_id), str(attendee_id), str(timestamp)])


def parse_payload(payload: str, prefix: str) -> CredentialPayloadDTO:
    """Split a scanned payload into its fields, rejecting anything of the wrong shape."""
    parts = (payload or "").strip().split(PAYLOAD_SEPARATOR)
    if len(parts) != PAYLOAD_FIELD_COUNT or parts[0] != prefix:
        raise MalformedCredentialError()
    if not all(part.strip() for part in parts):
        raise MalformedCredentialError()
    return CredentialPayloadDTO(
        prefix=parts[0],
        event_id=parts[1],
        attendee_id=parts[2],
        issued_at=parts[3],
    )


def render_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    image = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def png_to_data_url(png: bytes) -> str:
    return PNG_DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")


def data_url_to_png(data_url: str) -> bytes:
    if not data_url.startswith(PNG_DATA_URL_PREFIX):
        raise ValueError("Credential image is not a PNG data URL")
    return base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):])


class CredentialIssuer:
    """Issues one credential per attendee, idempotently."""

    def __init__(
        self,
        store: AttendeeStore,
        prefix: str | None = None,
        box_size: int | None = None,
        border: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.prefix = prefix or settings.credential_prefix
        self.box_size = box_size or settings.credential_box_size
        self.border = border or settings.credential_border
        self.clock = clock or (lambda: datetime.now(UTC))

    async def ensure_credential(self, attendee_id: UUID) -> str:
        """
        Return the attendee's credential token, issuing one if it has none yet.

        Storage errors propagate to the caller.
        """
        attendee = await self.store.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFoundError(attendee_id)
        if attendee.credential_token:
            return attendee.credential_token

        token = build_payload(self.prefix, attendee.event_id, attendee.uuid, self.clock())
        image = png_to_data_url(render_png(token, self.box_size, self.border))

        # The store keeps whichever credential landed first
        stored = await self.store.set_credential_if_missing(attendee.uuid, token, image)
        if stored.credential_token != token:
            logger.info("Credential for attendee %s was issued concurrently", attendee.uuid)
        else:
            logger.debug("Issued credential for attendee %s", attendee.uuid)
        return stored.credential_token
