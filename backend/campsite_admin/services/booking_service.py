"""Booking service — persistence and lookups for the booking workflow."""

import logging
import uuid
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campsite_admin.models.accommodation import Accommodation
from campsite_admin.models.booking import Booking, PaymentStatus
from campsite_admin.models.user import User
from campsite_admin.notifications import BookingConfirmation, BookingNotifier, send_booking_confirmation
from campsite_admin.schemas.booking import BookingBase

logger = logging.getLogger(__name__)

BOOKING_TXN_PREFIX = "BOOK"


class BookingCreationError(Exception):
    """The booking row could not be written; the transaction was rolled back."""


def generate_txn_id(prefix: str) -> str:
    """Return a unique transaction id of the form ``<prefix>-<uuid4>``."""
    return f"{prefix}-{uuid.uuid4()}"


async def get_accommodation(db: AsyncSession, accommodation_id: int) -> Accommodation | None:
    return await db.get(Accommodation, accommodation_id)


async def get_booking_by_id(db: AsyncSession, booking_id: int) -> Booking | None:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    return result.scalar_one_or_none()


async def get_booking_by_txn_id(db: AsyncSession, txnid: str) -> Booking | None:
    result = await db.execute(select(Booking).where(Booking.payment_txn_id == txnid))
    return result.scalar_one_or_none()


async def create_booking(
    db: AsyncSession,
    data: BookingBase,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
) -> Booking:
    """Insert a booking with a fresh ``BOOK-`` transaction id.

    Raises:
        BookingCreationError: If the insert fails. The session is rolled back
            first, so no partial row is ever visible.
    """
    booking = Booking(
        **data.model_dump(),
        payment_status=payment_status.value,
        payment_txn_id=generate_txn_id(BOOKING_TXN_PREFIX),
    )
    db.add(booking)
    try:
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Error creating booking for accommodation %s", data.accommodation_id)
        raise BookingCreationError("Failed to create booking") from e

    logger.info(
        "Created booking %s (txn=%s, status=%s)",
        booking.id,
        booking.payment_txn_id,
        booking.payment_status,
    )
    return booking


async def get_owner_email(db: AsyncSession, accommodation: Accommodation | None) -> str | None:
    if accommodation is None or accommodation.owner_id is None:
        return None
    result = await db.execute(select(User.email).where(User.id == accommodation.owner_id))
    return result.scalar_one_or_none()


async def get_confirmation_context(
    db: AsyncSession, booking: Booking
) -> tuple[BookingConfirmation, Accommodation | None, str | None]:
    """Collect booking, accommodation and owner fields for a confirmation."""
    accommodation = await get_accommodation(db, booking.accommodation_id)
    owner_email = await get_owner_email(db, accommodation)

    confirmation = BookingConfirmation(
        booking_id=booking.id,
        booking_date=booking.created_at.date(),
        guest_name=booking.guest_name,
        guest_email=booking.guest_email,
        guest_phone=booking.guest_phone,
        check_in=booking.check_in,
        check_out=booking.check_out,
        adults=booking.adults,
        children=booking.children,
        food_veg=booking.food_veg,
        food_nonveg=booking.food_nonveg,
        food_jain=booking.food_jain,
        total_amount=booking.total_amount,
        advance_amount=booking.advance_amount,
        accommodation_name=accommodation.name if accommodation else "",
        accommodation_address=(accommodation.address or "") if accommodation else "",
        latitude=accommodation.latitude if accommodation else None,
        longitude=accommodation.longitude if accommodation else None,
        owner_email=owner_email or "",
    )
    return confirmation, accommodation, owner_email


async def create_offline_booking(
    db: AsyncSession,
    data: BookingBase,
    notifier: BookingNotifier,
) -> tuple[Booking, Accommodation | None, str | None, bool]:
    """Create an already-paid booking, commit it, then mail the confirmation.

    The confirmation context is loaded before the commit, so a failed lookup
    leaves no paid booking behind. The mail itself is best-effort: a failure is
    logged and reported as ``confirmation_sent=False`` but never undoes the
    committed booking.
    """
    booking = await create_booking(db, data, payment_status=PaymentStatus.SUCCESS)
    confirmation, accommodation, owner_email = await get_confirmation_context(db, booking)
    await db.commit()

    sent = await send_booking_confirmation(notifier, confirmation)
    return booking, accommodation, owner_email, sent


async def list_bookings(
    db: AsyncSession, page: int, limit: int
) -> tuple[list[tuple[Booking, str | None]], int]:
    """Return one page of bookings (newest first) with accommodation names."""
    total_result = await db.execute(select(func.count()).select_from(Booking))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Booking, Accommodation.name)
        .outerjoin(Accommodation, Booking.accommodation_id == Accommodation.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [(row[0], row[1]) for row in result.all()], total


async def set_payment_status(db: AsyncSession, booking_id: int, status: PaymentStatus) -> bool:
    """Unconditionally overwrite a booking's payment status.

    Returns ``False`` when no booking has the given id.
    """
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(payment_status=status.value)
        .execution_options(synchronize_session=False)
    )
    updated = (result.rowcount or 0) > 0
    if updated:
        logger.info("Payment status of booking %s manually set to %s", booking_id, status.value)
    return updated


async def room_occupancy(db: AsyncSession, accommodation_id: int, check_in: date) -> int:
    """Rooms taken by paid bookings checking in on ``check_in``."""
    result = await db.execute(
        select(func.coalesce(func.sum(Booking.rooms), 0)).where(
            Booking.payment_status == PaymentStatus.SUCCESS.value,
            Booking.check_in == check_in,
            Booking.check_out > check_in,
            Booking.accommodation_id == accommodation_id,
        )
    )
    return int(result.scalar_one())
