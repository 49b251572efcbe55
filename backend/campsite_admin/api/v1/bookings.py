"""Bookings API router — creation, PayU payment flow, and admin lookups.

``POST /verify/{txnid}`` is PayU's callback target. It is never called by
the front-end directly and always answers with a redirect to the front-end
payment result page.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from campsite_admin.api.deps import get_db, get_notifier, get_payment_gateway, get_settings
from campsite_admin.config import Settings
from campsite_admin.notifications import BookingNotifier
from campsite_admin.payments.checkout import PendingBookingNotFoundError, initiate_payment
from campsite_admin.payments.payu_client import PayUClient
from campsite_admin.payments.reconciliation import check_payment_status, reconcile_payment
from campsite_admin.schemas.booking import (
    AccommodationSummary,
    BookingCreate,
    BookingCreated,
    BookingCreateResponse,
    BookingDetailsResponse,
    BookingListItem,
    BookingListResponse,
    BookingResponse,
    MessageResponse,
    OfflineBookingCreate,
    OfflineBookingData,
    OfflineBookingResponse,
    Pagination,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentStatusCheckResponse,
    PaymentStatusUpdate,
    RoomOccupancyResponse,
)
from campsite_admin.services.booking_service import (
    BookingCreationError,
    create_booking,
    create_offline_booking,
    get_accommodation,
    get_booking_by_txn_id,
    get_owner_email,
    list_bookings,
    room_occupancy,
    set_payment_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _ensure_accommodation_exists(db: AsyncSession, accommodation_id: int) -> None:
    """Raise ``HTTPException 404`` when the accommodation does not exist."""
    if await get_accommodation(db, accommodation_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Accommodation not found",
        )


def _creation_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to create booking",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings, newest first",
)
async def get_bookings(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Page size"),
    db: AsyncSession = Depends(get_db),
) -> BookingListResponse:
    rows, total = await list_bookings(db, page, limit)
    items = [
        BookingListItem(
            **BookingResponse.model_validate(booking).model_dump(),
            accommodation_name=accommodation_name,
        )
        for booking, accommodation_name in rows
    ]
    return BookingListResponse(
        data=items,
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.post(
    "",
    response_model=BookingCreateResponse,
    summary="Create a booking awaiting online payment",
)
async def create_online_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
) -> BookingCreateResponse:
    """Create a ``pending`` booking with a fresh ``BOOK-`` transaction id.

    Rule violations (dates, meal counts, amounts, occupancy) are rejected
    with 422 before anything is written.
    """
    await _ensure_accommodation_exists(db, body.accommodation_id)
    try:
        booking = await create_booking(db, body)
    except BookingCreationError as e:
        raise _creation_failed() from e

    return BookingCreateResponse(
        data=BookingCreated(
            booking_id=booking.id,
            payment_txn_id=booking.payment_txn_id,
            payment_status=booking.payment_status,
        )
    )


@router.post(
    "/offline",
    response_model=OfflineBookingResponse,
    summary="Record an already-paid booking and mail its confirmation",
)
async def create_offline(
    body: OfflineBookingCreate,
    db: AsyncSession = Depends(get_db),
    notifier: BookingNotifier = Depends(get_notifier),
) -> OfflineBookingResponse:
    """Create a booking directly in ``success`` state.

    The confirmation e-mail is sent after the booking is committed; a mail
    failure is reported as ``confirmation_sent: false``, not as an error.
    """
    await _ensure_accommodation_exists(db, body.accommodation_id)
    try:
        booking, accommodation, owner_email, sent = await create_offline_booking(db, body, notifier)
    except BookingCreationError as e:
        raise _creation_failed() from e

    return OfflineBookingResponse(
        data=OfflineBookingData(
            booking=BookingResponse.model_validate(booking),
            accommodation=AccommodationSummary.model_validate(accommodation) if accommodation else None,
            owner_email=owner_email,
            confirmation_sent=sent,
        )
    )


@router.post(
    "/payments/payu",
    response_model=PaymentInitiateResponse,
    summary="Initiate a PayU payment for a pending booking",
)
async def initiate_payu_payment(
    body: PaymentInitiateRequest,
    db: AsyncSession = Depends(get_db),
    gateway: PayUClient = Depends(get_payment_gateway),
) -> PaymentInitiateResponse:
    try:
        return await initiate_payment(db, gateway, body)
    except PendingBookingNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pending booking not found",
        ) from e


@router.post(
    "/verify/{txnid}",
    status_code=status.HTTP_303_SEE_OTHER,
    response_class=RedirectResponse,
    summary="PayU payment callback",
)
async def verify_payment_callback(
    txnid: str,
    db: AsyncSession = Depends(get_db),
    gateway: PayUClient = Depends(get_payment_gateway),
    notifier: BookingNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Re-verify ``txnid`` with PayU, update the booking, and redirect the payer.

    The redirect target is ``<frontend>/payment/<status>/<txnid>``; on any
    processing error the status is ``failed``.
    """
    logger.info("Payment verification callback received for %s", txnid)
    result = await reconcile_payment(db, gateway, notifier, txnid)
    return RedirectResponse(
        url=f"{settings.frontend_base_url.rstrip('/')}/payment/{result.status}/{txnid}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get(
    "/payment-status/{txnid}",
    response_model=PaymentStatusCheckResponse,
    summary="Check and reconcile a transaction's payment status",
)
async def get_payment_status(
    txnid: str,
    force_payu: bool = Query(False, description="Ask PayU even if the booking is already paid"),
    db: AsyncSession = Depends(get_db),
    gateway: PayUClient = Depends(get_payment_gateway),
) -> PaymentStatusCheckResponse:
    check = await check_payment_status(db, gateway, txnid, force=force_payu)
    if check is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found",
        )
    return PaymentStatusCheckResponse(data=check)


@router.get(
    "/details/{txnid}",
    response_model=BookingDetailsResponse,
    summary="Booking, accommodation and owner contact by transaction id",
)
async def get_booking_details(
    txnid: str,
    db: AsyncSession = Depends(get_db),
) -> BookingDetailsResponse:
    booking = await get_booking_by_txn_id(db, txnid)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    accommodation = await get_accommodation(db, booking.accommodation_id)
    owner_email = await get_owner_email(db, accommodation)
    return BookingDetailsResponse(
        booking=BookingResponse.model_validate(booking),
        accommodation=AccommodationSummary.model_validate(accommodation) if accommodation else None,
        owner_email=owner_email,
        booked_date=booking.created_at.date(),
    )


@router.get(
    "/room-occupancy",
    response_model=RoomOccupancyResponse,
    summary="Rooms taken by paid bookings checking in on a date",
)
async def get_room_occupancy(
    check_in: date = Query(..., description="Check-in date (YYYY-MM-DD)"),
    accommodation_id: int = Query(..., alias="id", description="Accommodation id"),
    db: AsyncSession = Depends(get_db),
) -> RoomOccupancyResponse:
    total_rooms = await room_occupancy(db, accommodation_id, check_in)
    return RoomOccupancyResponse(date=check_in.isoformat(), total_rooms=total_rooms)


@router.put(
    "/{booking_id}/status",
    response_model=MessageResponse,
    summary="Manually override a booking's payment status",
)
async def update_payment_status(
    booking_id: int,
    body: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Administrative escape hatch for when the booking and PayU disagree.

    No confirmation e-mail is sent, whatever the new status.
    """
    if not await set_payment_status(db, booking_id, body.payment_status):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return MessageResponse(message="Payment status updated")
