"""Confirmation e-mail dispatch through the configured SMTP relay."""

import logging
import re
from email.message import EmailMessage

import aiosmtplib

from campsite_admin.config import Settings
from campsite_admin.notifications.templates import (
    BookingConfirmation,
    render_confirmation,
    render_confirmation_text,
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class NotificationError(Exception):
    """The mail relay refused or failed to accept a confirmation."""


def is_valid_email(value: str | None) -> bool:
    """Basic syntactic check: something@something.tld, no whitespace."""
    if not value:
        return False
    return _EMAIL_PATTERN.match(value.strip()) is not None


class BookingNotifier:
    """Sends booking confirmation e-mails."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def build_message(self, confirmation: BookingConfirmation) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.mail_from
        message["To"] = (confirmation.guest_email or "").strip()
        message["Subject"] = self._settings.mail_subject
        message.set_content(render_confirmation_text(confirmation))
        message.add_alternative(render_confirmation(confirmation), subtype="html")
        return message

    async def send_confirmation(self, confirmation: BookingConfirmation) -> bool:
        """Render and send the confirmation for one booking.

        Returns ``False`` without sending when the guest e-mail is missing or
        malformed.

        Raises:
            NotificationError: If the SMTP relay cannot be reached or rejects
                the message.
        """
        recipient = (confirmation.guest_email or "").strip()
        if not is_valid_email(recipient):
            logger.error(
                "Invalid or missing guest email for booking %s, not sending confirmation: %r",
                confirmation.booking_id,
                recipient,
            )
            return False

        message = self.build_message(confirmation)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.smtp_username or None,
                password=self._settings.smtp_password or None,
                use_tls=self._settings.smtp_use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send confirmation for booking {confirmation.booking_id}") from e

        logger.info("Confirmation email sent for booking %s to %s", confirmation.booking_id, recipient)
        return True


async def send_booking_confirmation(notifier: BookingNotifier, confirmation: BookingConfirmation) -> bool:
    """Best-effort confirmation dispatch.

    Mail failures are logged and swallowed so they never fail the booking or
    payment request that triggered them.
    """
    try:
        return await notifier.send_confirmation(confirmation)
    except Exception:
        logger.exception("Failed to send confirmation email for booking %s", confirmation.booking_id)
        return False
