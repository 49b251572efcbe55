"""Booking confirmation document rendered into the confirmation e-mail."""

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from html import escape


@dataclass(frozen=True)
class BookingConfirmation:
    """Flattened booking, accommodation, and owner fields for one confirmation."""

    booking_id: int
    booking_date: date
    guest_name: str
    guest_email: str | None
    guest_phone: str | None
    check_in: date
    check_out: date
    adults: int
    children: int
    food_veg: int
    food_nonveg: int
    food_jain: int
    total_amount: Decimal
    advance_amount: Decimal
    accommodation_name: str = ""
    accommodation_address: str = ""
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    owner_email: str = ""

    @property
    def total_persons(self) -> int:
        return self.adults + self.children

    @property
    def remaining_amount(self) -> Decimal:
        return Decimal(self.total_amount) - Decimal(self.advance_amount)

    def as_dict(self) -> dict:
        return asdict(self)


def format_date(value: date) -> str:
    """Format a date as dd/mm/yyyy, the format guests see on their voucher."""
    return value.strftime("%d/%m/%Y")


def format_amount(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


CONFIRMATION_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Booking Confirmation</title></head>
<body style="margin:0;padding:0;background:#f4f4f4;font-family:Arial,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="max-width:640px;margin:0 auto;background:#ffffff;">
    <tr>
      <td style="padding:24px;background:#216896;color:#ffffff;">
        <div style="font-size:22px;font-weight:bold;">{accommodation_name}</div>
        <div>Booking ID - <b>{booking_id}</b></div>
        <div>Booking Date - <span>{booking_date}</span></div>
      </td>
    </tr>
    <tr>
      <td style="padding:24px;">
        <p><b>Dear {guest_name},</b></p>
        <p>{accommodation_name} has received your request and reserved your camping as per the
          details below. The primary guest {guest_name} will need to carry a valid photo ID at
          check-in. Your booking reference is <b>{booking_id}</b>.</p>
        <p>The advance paid is <b>INR {advance_amount}</b>. Please email us at
          <a href="mailto:{owner_email}" style="color:#216896;">{owner_email}</a> if there is any
          change to your plans.</p>
        <p><b>Team {accommodation_name}</b></p>
      </td>
    </tr>
    <tr>
      <td style="padding:24px;border-top:1px solid #dddddd;">
        <p style="margin:0 0 5px 0;">Name: <b>{guest_name}</b></p>
        <p style="margin:0 0 5px 0;">Mobile: <b>{guest_phone}</b></p>
        <p style="margin:0 0 5px 0;">Check In: <b>{check_in}</b></p>
        <p style="margin:0 0 5px 0;">Check Out: <b>{check_out}</b></p>
        <p style="margin:0 0 5px 0;">Total Person: <b>{total_persons}</b></p>
        <p style="margin:0 0 5px 0;">Adult: <b>{adults}</b></p>
        <p style="margin:0 0 5px 0;">Child: <b>{children}</b></p>
        <p style="margin:0 0 5px 0;">Veg Count: <b>{food_veg}</b></p>
        <p style="margin:0 0 5px 0;">Non Veg Count: <b>{food_nonveg}</b></p>
        <p style="margin:0 0 5px 0;">Jain Count: <b>{food_jain}</b></p>
      </td>
    </tr>
    <tr>
      <td style="padding:24px;border-top:1px solid #dddddd;">
        <p style="margin:0 0 5px 0;">Total Price: <b style="float:right;">{total_amount}</b></p>
        <p style="margin:0 0 5px 0;">Advance Paid: <b style="float:right;">{advance_amount}</b></p>
        <p style="margin:0 0 5px 0;">Remaining Amount: <b style="float:right;">{remaining_amount}</b></p>
      </td>
    </tr>
    <tr>
      <td style="padding:24px;border-top:1px solid #dddddd;">
        <p><b>Booking Cancellation Policy:</b> From {check_in}, 100% of the advance is non-refundable.</p>
        <p><b>{accommodation_name}</b><br>At- <span>{accommodation_address}</span></p>
        <p><a href="{map_url}" style="color:#164e6f;">View on Google Maps</a></p>
        <p>Contact: <a href="mailto:{owner_email}" style="color:#164e6f;"><b>{owner_email}</b></a></p>
      </td>
    </tr>
  </table>
</body>
</html>
"""

CONFIRMATION_TEXT = (
    "Dear {guest_name},\n\n"
    "Your booking {booking_id} at {accommodation_name} is confirmed.\n\n"
    "Check-in: {check_in}\n"
    "Check-out: {check_out}\n"
    "Guests: {total_persons} ({adults} adults, {children} children)\n"
    "Total: INR {total_amount}\n"
    "Advance paid: INR {advance_amount}\n"
    "Remaining: INR {remaining_amount}\n\n"
    "Questions? Write to {owner_email}.\n"
)


def _template_vars(confirmation: BookingConfirmation) -> dict[str, str]:
    map_url = ""
    if confirmation.latitude is not None and confirmation.longitude is not None:
        map_url = f"http://maps.google.com/maps?q={confirmation.latitude},{confirmation.longitude}"
    return {
        "booking_id": str(confirmation.booking_id),
        "booking_date": format_date(confirmation.booking_date),
        "guest_name": confirmation.guest_name,
        "guest_phone": confirmation.guest_phone or "",
        "check_in": format_date(confirmation.check_in),
        "check_out": format_date(confirmation.check_out),
        "total_persons": str(confirmation.total_persons),
        "adults": str(confirmation.adults),
        "children": str(confirmation.children),
        "food_veg": str(confirmation.food_veg),
        "food_nonveg": str(confirmation.food_nonveg),
        "food_jain": str(confirmation.food_jain),
        "total_amount": format_amount(confirmation.total_amount),
        "advance_amount": format_amount(confirmation.advance_amount),
        "remaining_amount": format_amount(confirmation.remaining_amount),
        "accommodation_name": confirmation.accommodation_name,
        "accommodation_address": confirmation.accommodation_address,
        "owner_email": confirmation.owner_email,
        "map_url": map_url,
    }


def render_confirmation(confirmation: BookingConfirmation) -> str:
    """Render the HTML confirmation document. All values are HTML-escaped."""
    values = {key: escape(value) for key, value in _template_vars(confirmation).items()}
    return CONFIRMATION_HTML.format(**values)


def render_confirmation_text(confirmation: BookingConfirmation) -> str:
    """Plain-text alternative for mail clients that do not render HTML."""
    return CONFIRMATION_TEXT.format(**_template_vars(confirmation))
