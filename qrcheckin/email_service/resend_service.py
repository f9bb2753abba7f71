import base64
import logging
from typing import Protocol

import httpx

from qrcheckin.email_service.base import CredentialEmail, EmailServiceBase
from qrcheckin.email_service.templates import QR_CONTENT_ID, QR_FILENAME, EmailTemplates

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class ResendEmailConfig(Protocol):
    resend_api_key: str
    emails_from: str
    organization_name: str


class ResendEmailService(EmailServiceBase):
    def __init__(
        self,
        config: ResendEmailConfig,
        http_client_class: type[httpx.AsyncClient] = httpx.AsyncClient,
    ):
        self._config = config
        self._http_client_class = http_client_class

    async def _send(
        self,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[dict],
    ) -> str | None:
        async with self._http_client_class() as client:
            response = await client.post(
                RESEND_EMAILS_URL,
                headers={
                    "Authorization": f"Bearer {self._config.resend_api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": f"{self._config.organization_name} <{self._config.emails_from}>",
                    "to": [to_address],
                    "subject": subject,
                    "html": html_body,
                    "text": text_body,
                    "attachments": attachments,
                },
            )
            response.raise_for_status()

            resend_email_id = response.json().get("id")
            logger.debug("Resend accepted email %s to %s", resend_email_id, to_address)
            return resend_email_id

    async def send_credential(self, email: CredentialEmail) -> str | None:
        subject, html_body, text_body = EmailTemplates.render_credential(
            email, self._config.organization_name
        )
        return await self._send(
            to_address=email.to_address,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            attachments=[
                {
                    "filename": QR_FILENAME,
                    "content": base64.b64encode(email.qr_png).decode("ascii"),
                    "content_type": "image/png",
                    "content_id": QR_CONTENT_ID,
                }
            ],
        )
