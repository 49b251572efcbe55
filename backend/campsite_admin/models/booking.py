"""Booking model — guest reservations and their payment state."""

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from campsite_admin.database import Base, utcnow


class PaymentStatus(str, enum.Enum):
    """Local cache of the gateway's settlement status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"


class Booking(Base):
    """A guest's reservation of an accommodation over a date range."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    accommodation_id: Mapped[int] = mapped_column(
        ForeignKey("accommodations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    package_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    adults: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    children: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rooms: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    food_veg: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    food_nonveg: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    food_jain: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    advance_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentStatus.PENDING.value,
        nullable=False,
    )
    payment_txn_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        CheckConstraint(
            "payment_status IN ('pending', 'success', 'failed', 'expired')",
            name="ck_bookings_payment_status",
        ),
        Index("ix_bookings_status_created", "payment_status", "created_at"),
        Index("ix_bookings_check_in", "check_in"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, accommodation_id={self.accommodation_id}, "
            f"txn={self.payment_txn_id}, status={self.payment_status})>"
        )
