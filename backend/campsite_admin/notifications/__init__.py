"""Booking confirmation notifications."""

from campsite_admin.notifications.mailer import (
    BookingNotifier,
    NotificationError,
    is_valid_email,
    send_booking_confirmation,
)
from campsite_admin.notifications.templates import (
    BookingConfirmation,
    render_confirmation,
    render_confirmation_text,
)

__all__ = [
    "BookingConfirmation",
    "BookingNotifier",
    "NotificationError",
    "is_valid_email",
    "render_confirmation",
    "render_confirmation_text",
    "send_booking_confirmation",
]
