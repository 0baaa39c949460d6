"""Itinerary-ready email notifications over SMTP."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Any

from goplanit.core.config import settings
from goplanit.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


def build_itinerary_email(
    recipient: str,
    preference_id: str,
    itinerary: dict[str, Any],
    sender: str | None = None,
    frontend_url: str | None = None,
) -> EmailMessage:
    """Compose the itinerary-ready message with a link to the frontend."""
    destination = itinerary.get("destination") or "trip"
    link = f"{(frontend_url or settings.FRONTEND_URL).rstrip('/')}/itinerary/{preference_id}"
    day_count = len(itinerary.get("days") or [])

    message = EmailMessage()
    message["Subject"] = f"Your {destination} itinerary is ready!"
    message["From"] = sender or settings.MAIL_FROM
    message["To"] = recipient
    message.set_content(
        "Hello,\n\n"
        f"Your {day_count}-day itinerary for {destination} has been generated "
        "and is ready for review.\n\n"
        f"View it here: {link}\n\n"
        "Safe travels!\n"
        "The GoPlanIt Team\n"
    )
    message.add_alternative(
        "<h2>Your personalized itinerary is ready!</h2>"
        f"<p>We've created a detailed {day_count}-day itinerary for your trip "
        f"to {escape(str(destination))}.</p>"
        f'<p><a href="{escape(link)}">View your itinerary</a></p>',
        subtype="html",
    )
    return message


class EmailNotifier:
    """Sends itinerary-ready emails.

    SMTP is blocking, so delivery runs in a worker thread. Without an
    ``SMTP_HOST`` the notifier is disabled and sends nothing.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        timeout: float | None = None,
    ) -> None:
        self.host = settings.SMTP_HOST if host is None else host
        self.port = port or settings.SMTP_PORT
        self.username = settings.SMTP_USER if username is None else username
        self.password = settings.SMTP_PASSWORD if password is None else password
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.timeout = timeout or settings.SMTP_TIMEOUT_SECONDS

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    async def send_itinerary_ready(
        self,
        recipient: str,
        preference_id: str,
        itinerary: dict[str, Any],
    ) -> bool:
        """
        Email the user that their itinerary is ready.

        Returns:
            True if a message was handed to the SMTP server, False if
            notifications are disabled

        Raises:
            NotificationError: If delivery failed
        """
        if not self.enabled:
            logger.info(f"SMTP not configured; skipping email for preference {preference_id}")
            return False

        message = build_itinerary_email(recipient, preference_id, itinerary)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send itinerary email: {e}") from e

        logger.info(f"Itinerary email sent for preference {preference_id}")
        return True

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
