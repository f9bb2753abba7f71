import asyncio
import smtplib
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from qrcheckin.config.settings import settings
from qrcheckin.email_service.base import CredentialEmail, EmailServiceBase
from qrcheckin.email_service.templates import QR_CONTENT_ID, QR_FILENAME, EmailTemplates


class SMTPEmailService(EmailServiceBase):
    def __init__(self):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_user
        self.password = settings.smtp_password
        self.from_address = settings.emails_from
        self.organization_name = settings.organization_name

    def _create_message(
        self,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
        qr_png: bytes,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("related")
        msg["Subject"] = subject
        msg["From"] = f'"{self.organization_name}" <{self.from_address}>'
        msg["To"] = to_address
        msg["Message-ID"] = make_msgid()

        alternative = MIMEMultipart("alternative")
        alternative.attach(MIMEText(text_body, "plain"))
        alternative.attach(MIMEText(html_body, "html"))
        msg.attach(alternative)

        image = MIMEImage(qr_png, "png")
        image.add_header("Content-ID", f"<{QR_CONTENT_ID}>")
        image.add_header("Content-Disposition", "inline", filename=QR_FILENAME)
        msg.attach(image)

        return msg

    def _send(self, msg: MIMEMultipart) -> None:
        if self.username and self.password:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        else:
            # For development/testing without authentication
            with smtplib.SMTP(self.host, self.port) as server:
                server.send_message(msg)

    async def send_credential(self, email: CredentialEmail) -> str | None:
        subject, html_body, text_body = EmailTemplates.render_credential(
            email, self.organization_name
        )
        msg = self._create_message(
            to_address=email.to_address,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            qr_png=email.qr_png,
        )
        # smtplib blocks, keep the event loop free for check-ins
        await asyncio.to_thread(self._send, msg)
        return msg["Message-ID"]
