"""Shared test configuration and fixtures.

Every test gets a fresh database: an in-memory SQLite database by default, or
the database named by ``TEST_DATABASE_URL`` (e.g. a PostgreSQL
``campsite_test`` database), with all tables created up front and dropped
afterwards. PayU verification and SMTP delivery are replaced with mocks.
"""

import os

os.environ.setdefault("PAYU_MERCHANT_KEY", "test_merchant_key")
os.environ.setdefault("PAYU_MERCHANT_SALT", "test_merchant_salt")
os.environ.setdefault("FRONTEND_BASE_URL", "https://frontend.test")
os.environ.setdefault("ADMIN_BASE_URL", "https://admin.test")
os.environ.setdefault("SWEEPER_ENABLED", "false")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from campsite_admin.api.deps import get_notifier, get_payment_gateway  # noqa: E402
from campsite_admin.config import settings  # noqa: E402
from campsite_admin.database import Base, get_db, utcnow  # noqa: E402
from campsite_admin.main import app  # noqa: E402
from campsite_admin.models import Accommodation, Booking, User  # noqa: E402
from campsite_admin.notifications import BookingNotifier  # noqa: E402
from campsite_admin.payments.payu_client import (  # noqa: E402
    PaymentOutcome,
    PayUClient,
    VerificationResult,
    normalize_gateway_status,
)

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        return create_async_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(TEST_DATABASE_URL, pool_pre_ping=True)


def _verified(txnid: str, raw_status: str | None) -> VerificationResult:
    """Build a gateway verification result as PayU would report it.

    ``raw_status=None`` means PayU returned no details for the transaction.
    """
    if raw_status is None:
        return VerificationResult(
            txnid=txnid,
            outcome=PaymentOutcome.INDETERMINATE,
            raw={"status": 0, "msg": "0 out of 1 Transactions Fetched Successfully"},
            error="PayU verification returned no data",
        )
    transaction = {
        "mihpayid": "403993715531077182",
        "status": raw_status,
        "mode": "UPI",
        "bank_ref_num": "BRN123",
        "amt": "1000.00",
    }
    return VerificationResult(
        txnid=txnid,
        outcome=normalize_gateway_status(raw_status),
        transaction=transaction,
        raw={"status": 1, "transaction_details": {txnid: transaction}},
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Create the schema on a fresh engine and drop it afterwards."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting rows, separate from request sessions."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> PayUClient:
    """Real PayU client (hashing, payload building) with verification mocked."""
    client = PayUClient(settings)
    client.verify_payment = AsyncMock(side_effect=lambda txnid: _verified(txnid, "success"))
    return client


@pytest.fixture
def notifier() -> BookingNotifier:
    """Notifier whose SMTP dispatch is mocked out."""
    mailer = BookingNotifier(settings)
    mailer.send_confirmation = AsyncMock(return_value=True)
    return mailer


@pytest_asyncio.fixture
async def client(session_factory, gateway, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test database and mocks."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(name="Camp Owner", email=f"owner-{unique}@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def accommodation(db_session: AsyncSession, owner: User) -> Accommodation:
    acc = Accommodation(
        name="Lakeside Tents",
        address="Pawna Lake, Maharashtra",
        latitude=Decimal("18.6660000"),
        longitude=Decimal("73.4920000"),
        rooms=10,
        owner_id=owner.id,
    )
    db_session.add(acc)
    await db_session.commit()
    return acc


@pytest.fixture
def booking_payload(accommodation: Accommodation) -> Callable[..., dict]:
    """Factory for a valid online booking request body."""

    def _payload(**overrides) -> dict:
        payload = {
            "guest_name": "Asha Rao",
            "guest_email": "asha@example.com",
            "guest_phone": "9876543210",
            "accommodation_id": accommodation.id,
            "package_id": 1,
            "check_in": "2025-06-01",
            "check_out": "2025-06-03",
            "adults": 2,
            "children": 0,
            "rooms": 1,
            "food_veg": 2,
            "food_nonveg": 0,
            "food_jain": 0,
            "total_amount": 5000,
            "advance_amount": 1000,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def make_booking(
    db_session: AsyncSession, accommodation: Accommodation
) -> Callable[..., Awaitable[Booking]]:
    """Factory inserting a booking row directly, bypassing the API."""

    async def _make(**overrides) -> Booking:
        fields = {
            "guest_name": "Asha Rao",
            "guest_email": "asha@example.com",
            "guest_phone": "9876543210",
            "accommodation_id": accommodation.id,
            "check_in": date(2025, 6, 1),
            "check_out": date(2025, 6, 3),
            "adults": 2,
            "children": 0,
            "rooms": 1,
            "food_veg": 2,
            "total_amount": Decimal("5000.00"),
            "advance_amount": Decimal("1000.00"),
            "payment_status": "pending",
            "payment_txn_id": f"PAYU-{uuid.uuid4()}",
            "created_at": utcnow(),
        }
        fields.update(overrides)
        booking = Booking(**fields)
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest.fixture
def fetch_booking(session_factory) -> Callable[[int], Awaitable[Booking]]:
    """Load a booking in a fresh session so no stale identity-map copy is used."""

    async def _fetch(booking_id: int) -> Booking:
        async with session_factory() as session:
            booking = await session.get(Booking, booking_id)
            assert booking is not None
            return booking

    return _fetch


@pytest.fixture
def verified() -> Callable[[str, str | None], VerificationResult]:
    """Expose the PayU verification result builder to tests."""
    return _verified
