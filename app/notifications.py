"""Email notifications sent to owners when a sighting is reported."""

import logging
from html import escape

from fastapi_mail import FastMail, MessageSchema

from .core import Settings, get_mail_config, get_settings

logger = logging.getLogger(__name__)


class LogChannel:
    """Used when SMTP is not configured: the message is only logged."""

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        logger.info("mail disabled, would send %r to %s", subject, to_address)
        return True


class MailChannel:
    """Sends HTML email through FastAPI-Mail."""

    def __init__(self, mail: FastMail):
        self.mail = mail

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        message = MessageSchema(
            subject=subject,
            recipients=[to_address],
            body=body,
            subtype="html",
        )
        await self.mail.send_message(message)
        return True


def build_notification_channel(settings: Settings):
    if settings.mail_configured:
        return MailChannel(FastMail(get_mail_config()))
    return LogChannel()


def get_notification_channel():
    """Dependency returning the channel selected by the settings."""
    return build_notification_channel(get_settings())


def format_report_email(
    pet_name: str,
    reporter_name: str,
    reporter_phone: str,
    location: str | None = None,
    details: str | None = None,
) -> tuple[str, str]:
    """Build subject and HTML body of a sighting notification."""

    subject = f"Possible sighting of {pet_name}"
    lines = [
        f"<h2>Sighting of {escape(pet_name)}</h2>",
        f"<p><b>Reported by:</b> {escape(reporter_name)} ({escape(reporter_phone)})</p>",
    ]
    if location:
        lines.append(f"<p><b>Location:</b> {escape(location)}</p>")
    if details:
        lines.append(f"<p><b>Details:</b> {escape(details)}</p>")
    body = "<html><body>" + "".join(lines) + "</body></html>"
    return subject, body


async def dispatch_report_notification(
    channel,
    to_address: str,
    pet_name: str,
    reporter_name: str,
    reporter_phone: str,
    location: str | None = None,
    details: str | None = None,
) -> bool:
    """
    Tell the owner about a new sighting.

    Delivery is best effort: failures are logged and reported as
    ``False``, the stored report is not affected.
    """
    subject, body = format_report_email(
        pet_name, reporter_name, reporter_phone, location, details
    )
    try:
        return bool(await channel.send(to_address, subject, body))
    except Exception:
        logger.exception("sighting notification to %s failed", to_address)
        return False
