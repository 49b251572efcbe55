"""Start a PayU payment for a booking that is still awaiting payment."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campsite_admin.models.booking import Booking, PaymentStatus
from campsite_admin.payments.payu_client import PAYU_TXN_PREFIX, PayUClient
from campsite_admin.schemas.booking import PaymentInitiateRequest, PaymentInitiateResponse
from campsite_admin.services.booking_service import generate_txn_id

logger = logging.getLogger(__name__)


class PendingBookingNotFoundError(Exception):
    """No booking with the given id is waiting for payment."""


async def initiate_payment(
    db: AsyncSession,
    gateway: PayUClient,
    body: PaymentInitiateRequest,
) -> PaymentInitiateResponse:
    """Attach a new ``PAYU-`` transaction id to a pending booking and sign the checkout form.

    Raises:
        PendingBookingNotFoundError: If the booking does not exist or has
            already left the ``pending`` state.
    """
    result = await db.execute(
        select(Booking).where(
            Booking.id == body.booking_id,
            Booking.payment_status == PaymentStatus.PENDING.value,
        )
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise PendingBookingNotFoundError(f"Pending booking {body.booking_id} not found")

    txnid = generate_txn_id(PAYU_TXN_PREFIX)
    payment_data = gateway.build_payment_request(
        txnid=txnid,
        amount=str(body.amount),
        productinfo=body.productinfo,
        firstname=body.firstname,
        email=body.email,
        phone=body.phone,
    )

    booking.payment_txn_id = txnid
    booking.payment_status = PaymentStatus.PENDING.value
    await db.flush()

    logger.info("Initiated PayU payment %s for booking %s (amount=%s)", txnid, booking.id, body.amount)
    return PaymentInitiateResponse(payu_url=gateway.checkout_url, payment_data=payment_data)
