from qrcheckin.config.settings import settings
from qrcheckin.email_service.base import CredentialEmail, EmailServiceBase
from qrcheckin.email_service.resend_service import ResendEmailService
from qrcheckin.email_service.smtp_service import SMTPEmailService
from qrcheckin.email_service.templates import EmailTemplates


def get_email_service() -> EmailServiceBase:
    if settings.resend_api_key:
        return ResendEmailService(config=settings)
    return SMTPEmailService()


__all__ = [
    "CredentialEmail",
    "EmailServiceBase",
    "EmailTemplates",
    "get_email_service",
]
