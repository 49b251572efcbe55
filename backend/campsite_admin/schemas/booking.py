"""Pydantic v2 request/response schemas for booking endpoints."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from campsite_admin.models.booking import PaymentStatus

# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------


def validate_booking_rules(
    check_in: date,
    check_out: date,
    adults: int,
    children: int,
    food_veg: int,
    food_nonveg: int,
    food_jain: int,
) -> list[str]:
    """Return every violated cross-field rule for a booking request.

    Meal preferences are only checked when at least one meal count is given:
    a request without meal counts is accepted as-is.
    """
    errors: list[str] = []
    if check_out <= check_in:
        errors.append("Check-out must be after check-in")

    total_food = food_veg + food_nonveg + food_jain
    if total_food > 0 and total_food != adults + children:
        errors.append("Food preferences must match total guests")
    return errors


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingBase(BaseModel):
    """Fields shared by online and offline booking requests."""

    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: EmailStr | None = None
    guest_phone: str | None = Field(None, max_length=50)
    accommodation_id: int
    check_in: date
    check_out: date
    adults: int = Field(1, ge=1, description="Must have at least 1 adult")
    children: int = Field(0, ge=0)
    rooms: int = Field(1, ge=1, description="Must book at least 1 room")
    food_veg: int = Field(0, ge=0)
    food_nonveg: int = Field(0, ge=0)
    food_jain: int = Field(0, ge=0)
    total_amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    advance_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def check_booking_rules(self) -> "BookingBase":
        """Validate date ordering and meal counts against guest counts."""
        errors = validate_booking_rules(
            self.check_in,
            self.check_out,
            self.adults,
            self.children,
            self.food_veg,
            self.food_nonveg,
            self.food_jain,
        )
        if errors:
            raise ValueError("; ".join(errors))
        return self


class BookingCreate(BookingBase):
    """Online booking: created pending, paid through the gateway afterwards."""

    package_id: int


class OfflineBookingCreate(BookingBase):
    """Booking taken at the desk: already paid, confirmation mailed at once."""

    guest_email: EmailStr


class PaymentInitiateRequest(BaseModel):
    """Payer details used to start a PayU payment for a pending booking."""

    booking_id: int
    amount: Decimal = Field(..., gt=0)
    firstname: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., description="At least 10 digits after stripping separators")
    productinfo: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_phone(self) -> "PaymentInitiateRequest":
        """Require a phone number with at least 10 digits."""
        if len("".join(ch for ch in self.phone if ch.isdigit())) < 10:
            raise ValueError("Valid 10-digit phone required")
        return self


class PaymentStatusUpdate(BaseModel):
    """Manual override of a booking's payment status."""

    payment_status: PaymentStatus


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class BookingResponse(BaseModel):
    """A booking row as stored."""

    id: int
    guest_name: str
    guest_email: str | None = None
    guest_phone: str | None = None
    accommodation_id: int
    package_id: int | None = None
    check_in: date
    check_out: date
    adults: int
    children: int
    rooms: int
    food_veg: int
    food_nonveg: int
    food_jain: int
    total_amount: Decimal
    advance_amount: Decimal
    payment_status: str
    payment_txn_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingListItem(BookingResponse):
    accommodation_name: str | None = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class BookingListResponse(BaseModel):
    """Paginated list of bookings, newest first."""

    success: bool = True
    data: list[BookingListItem]
    pagination: Pagination


class BookingCreated(BaseModel):
    booking_id: int
    payment_txn_id: str
    payment_status: str


class BookingCreateResponse(BaseModel):
    success: bool = True
    data: BookingCreated


class AccommodationSummary(BaseModel):
    """Accommodation fields shown alongside a booking."""

    id: int
    name: str
    address: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    owner_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class OfflineBookingData(BaseModel):
    booking: BookingResponse
    accommodation: AccommodationSummary | None = None
    owner_email: str | None = None
    confirmation_sent: bool


class OfflineBookingResponse(BaseModel):
    success: bool = True
    data: OfflineBookingData


class BookingDetailsResponse(BaseModel):
    """Booking looked up by transaction id with its accommodation and owner contact."""

    booking: BookingResponse
    accommodation: AccommodationSummary | None = None
    owner_email: str | None = None
    booked_date: date


class PaymentData(BaseModel):
    """Form fields posted by the payer's browser to the PayU hosted page."""

    key: str
    txnid: str
    amount: str
    productinfo: str
    firstname: str
    email: str
    phone: str
    surl: str
    furl: str
    hash: str
    currency: str


class PaymentInitiateResponse(BaseModel):
    success: bool = True
    message: str = "Payment initiated"
    payu_url: str
    payment_data: PaymentData


class PaymentStatusCheck(BaseModel):
    """Result of reconciling one transaction on demand."""

    txnid: str
    status: str
    source: str  # database, payu
    booking_id: int
    amount: Decimal | None = None
    message: str | None = None
    warning: str | None = None
    payu_response: dict | list | str | None = None
    payment_id: str | None = None
    payment_mode: str | None = None
    bank_ref_num: str | None = None
    payu_status: str | None = None
    status_updated: bool = False
    original_db_status: str | None = None


class PaymentStatusCheckResponse(BaseModel):
    success: bool = True
    data: PaymentStatusCheck


class RoomOccupancyResponse(BaseModel):
    success: bool = True
    date: str  # YYYY-MM-DD
    total_rooms: int
