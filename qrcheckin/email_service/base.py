from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CredentialEmail:
    """Everything needed to render one credential email."""

    to_address: str
    attendee_name: str
    event_title: str
    event_date: str
    event_location: str
    adults: int
    kids: int
    qr_png: bytes


class EmailServiceBase(ABC):
    @abstractmethod
    async def send_credential(self, email: CredentialEmail) -> str | None:
        """
        Send the check-in QR code to one attendee.

        Returns the provider's message id when there is one. Any exception
        means the message was not accepted.
        """
        pass
