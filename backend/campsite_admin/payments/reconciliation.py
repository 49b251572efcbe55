"""Payment reconciliation — bring local booking state in line with PayU.

The gateway is authoritative for settlement. A booking's ``payment_status``
is only a cache of it and is rewritten here from a fresh verification call,
never from the status the callback itself carries.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from campsite_admin.models.booking import Booking, PaymentStatus
from campsite_admin.notifications import BookingNotifier, send_booking_confirmation
from campsite_admin.payments.payu_client import PaymentOutcome, PayUClient
from campsite_admin.schemas.booking import PaymentStatusCheck
from campsite_admin.services.booking_service import get_booking_by_txn_id, get_confirmation_context

logger = logging.getLogger(__name__)

NO_DATA_WARNING = "PayU verification returned no data - check merchant dashboard manually"


@dataclass(frozen=True)
class ReconciliationResult:
    """Status the payer is redirected with, plus what the run changed."""

    txnid: str
    status: str
    updated: bool = False
    notified: bool = False


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)


async def _settle_pending(db: AsyncSession, booking_id: int, status: PaymentStatus) -> bool:
    """Move a booking out of ``pending``. Returns ``False`` if it already left it.

    ``success``, ``failed`` and ``expired`` are terminal here; only the manual
    override may change them.
    """
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.payment_status == PaymentStatus.PENDING.value,
        )
        .values(payment_status=status.value)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


async def reconcile_payment(
    db: AsyncSession,
    gateway: PayUClient,
    notifier: BookingNotifier,
    txnid: str,
) -> ReconciliationResult:
    """Handle PayU's asynchronous callback for ``txnid``.

    - Unknown transaction or any unexpected error: ``failed``.
    - Booking no longer ``pending``: stored status reported, nothing written
      or sent, without asking the gateway.
    - Gateway gave no usable answer: stored status kept and reported as is.
    - Gateway answered: a verified success becomes ``success``; anything else
      becomes ``failed``. The new status is committed before the confirmation e-mail
      goes out, and the e-mail is only sent by the request that settled it.
    """
    try:
        booking = await get_booking_by_txn_id(db, txnid)
        if booking is None:
            logger.warning("Payment callback for unknown transaction %s", txnid)
            return ReconciliationResult(txnid=txnid, status=PaymentStatus.FAILED.value)

        if booking.payment_status != PaymentStatus.PENDING.value:
            logger.info(
                "Payment callback for %s ignored, booking %s already %s",
                txnid,
                booking.id,
                booking.payment_status,
            )
            return ReconciliationResult(txnid=txnid, status=booking.payment_status)

        verification = await gateway.verify_payment(txnid)
        if not verification.is_definitive:
            logger.warning(
                "No usable PayU answer for %s, keeping stored status %s",
                txnid,
                booking.payment_status,
            )
            return ReconciliationResult(txnid=txnid, status=booking.payment_status)

        if verification.outcome is PaymentOutcome.SUCCESS:
            new_status = PaymentStatus.SUCCESS
        else:
            new_status = PaymentStatus.FAILED

        if not await _settle_pending(db, booking.id, new_status):
            # Settled concurrently by another callback or the sweeper.
            await db.refresh(booking)
            return ReconciliationResult(txnid=txnid, status=booking.payment_status)
        await db.commit()
        logger.info("Payment %s for txnid %s", new_status.value, txnid)

        notified = False
        if new_status is PaymentStatus.SUCCESS:
            confirmation, _, _ = await get_confirmation_context(db, booking)
            notified = await send_booking_confirmation(notifier, confirmation)

        return ReconciliationResult(
            txnid=txnid,
            status=new_status.value,
            updated=True,
            notified=notified,
        )
    except Exception:
        logger.exception("Verification error for txnid %s", txnid)
        await db.rollback()
        return ReconciliationResult(txnid=txnid, status=PaymentStatus.FAILED.value)


async def check_payment_status(
    db: AsyncSession,
    gateway: PayUClient,
    txnid: str,
    force: bool = False,
) -> PaymentStatusCheck | None:
    """Report a transaction's status, re-verifying with PayU when it matters.

    Bookings already marked ``success`` are answered from the database unless
    ``force`` is set. Only a settled gateway answer (success or failed) for a
    ``pending`` booking is written back; terminal bookings, and a gateway that
    is pending or silent, leave the row alone.

    Returns ``None`` when no booking carries ``txnid``.
    """
    booking = await get_booking_by_txn_id(db, txnid)
    if booking is None:
        return None

    amount = booking.advance_amount or booking.total_amount
    if not force and booking.payment_status == PaymentStatus.SUCCESS.value:
        return PaymentStatusCheck(
            txnid=txnid,
            status=booking.payment_status,
            source="database",
            booking_id=booking.id,
            amount=amount,
            message="Payment already confirmed as successful",
        )

    verification = await gateway.verify_payment(txnid)
    if not verification.is_definitive:
        return PaymentStatusCheck(
            txnid=txnid,
            status=booking.payment_status,
            source="database",
            booking_id=booking.id,
            amount=amount,
            warning=NO_DATA_WARNING,
            payu_response=verification.raw if verification.raw is not None else verification.error,
        )

    original = booking.payment_status
    final = original
    if original == PaymentStatus.PENDING.value and verification.outcome in (
        PaymentOutcome.SUCCESS,
        PaymentOutcome.FAILED,
    ):
        settled = PaymentStatus(verification.outcome.value)
        if await _settle_pending(db, booking.id, settled):
            final = settled.value
            logger.info("Payment status for %s reconciled: %s -> %s", txnid, original, final)
        else:
            await db.refresh(booking)
            final = booking.payment_status
    elif original != PaymentStatus.PENDING.value:
        logger.info(
            "PayU reports %r for %s; booking %s stays %s",
            verification.gateway_status,
            txnid,
            booking.id,
            original,
        )

    transaction = verification.transaction
    return PaymentStatusCheck(
        txnid=txnid,
        status=final,
        source="payu",
        booking_id=booking.id,
        amount=amount,
        payment_id=_as_str(transaction.get("mihpayid")),
        payment_mode=_as_str(transaction.get("mode")),
        bank_ref_num=_as_str(transaction.get("bank_ref_num")),
        payu_status=_as_str(transaction.get("status")),
        status_updated=final != original,
        original_db_status=original,
    )
