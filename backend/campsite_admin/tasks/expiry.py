"""Background expiry of bookings that were never paid."""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campsite_admin.config import Settings
from campsite_admin.database import utcnow
from campsite_admin.models.booking import Booking, PaymentStatus

logger = logging.getLogger(__name__)


async def expire_stale_bookings(
    db: AsyncSession,
    ttl: timedelta,
    now: datetime | None = None,
) -> int:
    """Mark every booking still pending after ``ttl`` as expired.

    One set-based UPDATE over the current table state; running it again with
    no newly stale rows affects nothing. Returns the number of rows changed.
    """
    cutoff = (now or utcnow()) - ttl
    result = await db.execute(
        update(Booking)
        .where(
            Booking.payment_status == PaymentStatus.PENDING.value,
            Booking.created_at < cutoff,
        )
        .values(payment_status=PaymentStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


class BookingExpirySweeper:
    """Runs :func:`expire_stale_bookings` on a fixed interval.

    Owned by the application lifespan: ``start()`` on startup, ``stop()`` on
    shutdown. A failing run is logged and the loop carries on.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        interval_seconds: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._ttl = timedelta(minutes=settings.booking_pending_ttl_minutes)
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.booking_expiry_interval_minutes * 60
        )
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int | None:
        """Run one sweep in its own session. Returns ``None`` if it failed."""
        try:
            async with self._session_factory() as session:
                count = await expire_stale_bookings(session, self._ttl)
                await session.commit()
        except Exception:
            logger.exception("Booking cleanup error")
            return None

        logger.info("Marked %s bookings as expired", count)
        return count

    async def _run_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Starting booking expiry sweeper (every %ss, ttl=%s)",
            self._interval,
            self._ttl,
        )
        self._task = asyncio.create_task(self._run_forever(), name="booking-expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Booking expiry sweeper stopped")
