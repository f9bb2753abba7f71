import html
from dataclasses import dataclass

from qrcheckin.email_service.base import CredentialEmail

QR_CONTENT_ID = "qrcode"
QR_FILENAME = "qrcode.png"


@dataclass
class EmailTemplates:
    CREDENTIAL_SUBJECT = "Event QR Code - {event_title}"
    CREDENTIAL_HTML = """
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="text-align: center; margin-bottom: 30px;">
            <h1 style="color: #3b82f6;">Your Event QR Code</h1>
            <p>{organization_name}</p>
        </div>

        <p>Dear {attendee_name},</p>

        <p>You're registered for <strong>{event_title}</strong>!</p>

        <div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
            <h2 style="color: #3b82f6; margin-top: 0;">Event Details</h2>
            <p><strong>Event:</strong> {event_title}</p>
            <p><strong>Date:</strong> {event_date}</p>
            <p><strong>Location:</strong> {event_location}</p>
        </div>

        <div style="background-color: #fef3c7; padding: 20px; border-radius: 8px; margin: 20px 0; text-align: center;">
            <h3 style="color: #78350f; margin-top: 0;">Food Coupons</h3>
            <p style="font-size: 36px; font-weight: bold; color: #f59e0b; margin: 0;">{total_coupons}</p>
            <p style="color: #78350f;">({party})</p>
        </div>

        <div style="text-align: center; margin: 30px 0;">
            <h3 style="color: #3b82f6;">Your Check-in QR Code</h3>
            <img src="cid:{qr_content_id}" alt="QR Code" style="max-width: 300px; border: 2px solid #3b82f6; border-radius: 10px; padding: 10px;" />
            <p style="color: #6b7280;"><strong>Present this at the entrance</strong></p>
        </div>

        <ul>
            <li>Save this email or screenshot the QR code</li>
            <li>One QR code for your entire group</li>
        </ul>

        <p>See you at the event!</p>

        <hr style="border: none; border-top: 1px solid #ddd; margin: 30px 0;">

        <p style="font-size: 12px; color: #888; text-align: center;">
            {organization_name}<br>This is an automated email.
        </p>
    </body>
    </html>
    """

    CREDENTIAL_TEXT = """
    Dear {attendee_name},

    You're registered for {event_title}!

    Event Details:
    - Event: {event_title}
    - Date: {event_date}
    - Location: {event_location}

    Food coupons: {total_coupons} ({party})

    Your check-in QR code is attached. Present it at the entrance.
    One QR code covers your entire group.

    See you at the event!

    {organization_name}
    """

    @staticmethod
    def describe_party(adults: int, kids: int) -> str:
        party = f"{adults} Adult{'s' if adults != 1 else ''}"
        if kids > 0:
            party += f" + {kids} Kid{'s' if kids != 1 else ''}"
        return party

    @classmethod
    def render_credential(
        cls, email: CredentialEmail, organization_name: str
    ) -> tuple[str, str, str]:
        """Return (subject, html_body, text_body) for a credential email."""
        context = {
            "attendee_name": email.attendee_name,
            "event_title": email.event_title,
            "event_date": email.event_date,
            "event_location": email.event_location,
            "total_coupons": email.adults + email.kids,
            "party": cls.describe_party(email.adults, email.kids),
            "organization_name": organization_name,
            "qr_content_id": QR_CONTENT_ID,
        }
        # Names, titles and locations come from uploaded files
        html_context = {
            key: html.escape(value) if isinstance(value, str) else value
            for key, value in context.items()
        }
        return (
            cls.CREDENTIAL_SUBJECT.format(**context),
            cls.CREDENTIAL_HTML.format(**html_context),
            cls.CREDENTIAL_TEXT.format(**context),
        )
