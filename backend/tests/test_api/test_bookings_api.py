"""Tests for the booking endpoints: creation, listing, lookups and overrides."""

import re
from datetime import date, timedelta
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from campsite_admin.database import utcnow
from campsite_admin.notifications import NotificationError

pytestmark = pytest.mark.asyncio

BOOK_TXN_PATTERN = re.compile(r"^BOOK-[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


# ---------------------------------------------------------------------------
# POST /api/v1/bookings
# ---------------------------------------------------------------------------


class TestCreateBooking:
    """Tests for online booking creation."""

    async def test_create_success(self, client: AsyncClient, booking_payload, fetch_booking) -> None:
        response = await client.post("/api/v1/bookings", json=booking_payload())
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["payment_status"] == "pending"
        assert BOOK_TXN_PATTERN.match(data["payment_txn_id"])

        stored = await fetch_booking(data["booking_id"])
        assert stored.payment_status == "pending"
        assert stored.payment_txn_id == data["payment_txn_id"]
        assert stored.package_id == 1
        assert stored.food_veg == 2

    async def test_transaction_ids_are_unique(self, client: AsyncClient, booking_payload) -> None:
        txn_ids = set()
        for _ in range(3):
            response = await client.post("/api/v1/bookings", json=booking_payload())
            assert response.status_code == 200
            txn_ids.add(response.json()["data"]["payment_txn_id"])
        assert len(txn_ids) == 3

    async def test_check_out_equal_to_check_in_rejected(
        self, client: AsyncClient, booking_payload
    ) -> None:
        response = await client.post(
            "/api/v1/bookings",
            json=booking_payload(check_in="2025-06-01", check_out="2025-06-01"),
        )
        assert response.status_code == 422
        assert "Check-out must be after check-in" in response.text

    async def test_meal_count_mismatch_rejected(self, client: AsyncClient, booking_payload) -> None:
        response = await client.post(
            "/api/v1/bookings",
            json=booking_payload(adults=2, children=1, food_veg=2),
        )
        assert response.status_code == 422
        assert "Food preferences must match total guests" in response.text

    async def test_no_meals_accepted(self, client: AsyncClient, booking_payload) -> None:
        response = await client.post(
            "/api/v1/bookings",
            json=booking_payload(adults=3, food_veg=0),
        )
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "overrides",
        [
            {"adults": 0, "food_veg": 0},
            {"rooms": 0},
            {"children": -1},
            {"total_amount": 0},
            {"advance_amount": -1},
        ],
    )
    async def test_invalid_counts_and_amounts_rejected(
        self, client: AsyncClient, booking_payload, overrides
    ) -> None:
        response = await client.post("/api/v1/bookings", json=booking_payload(**overrides))
        assert response.status_code == 422

    async def test_missing_package_rejected(self, client: AsyncClient, booking_payload) -> None:
        payload = booking_payload()
        del payload["package_id"]
        response = await client.post("/api/v1/bookings", json=payload)
        assert response.status_code == 422

    async def test_unknown_accommodation_returns_404(
        self, client: AsyncClient, booking_payload
    ) -> None:
        response = await client.post("/api/v1/bookings", json=booking_payload(accommodation_id=99999))
        assert response.status_code == 404
        assert response.json()["detail"] == "Accommodation not found"

    async def test_persistence_failure_leaves_no_row(
        self, client: AsyncClient, booking_payload
    ) -> None:
        fixed_txn = "BOOK-00000000-0000-4000-8000-000000000000"
        with patch(
            "campsite_admin.services.booking_service.generate_txn_id",
            return_value=fixed_txn,
        ):
            first = await client.post("/api/v1/bookings", json=booking_payload())
            second = await client.post("/api/v1/bookings", json=booking_payload())

        assert first.status_code == 200
        assert second.status_code == 500
        assert second.json()["detail"] == "Failed to create booking"

        listing = await client.get("/api/v1/bookings")
        assert listing.json()["pagination"]["total"] == 1


# ---------------------------------------------------------------------------
# POST /api/v1/bookings/offline
# ---------------------------------------------------------------------------


class TestCreateOfflineBooking:
    """Tests for desk bookings that are already paid."""

    async def test_offline_booking_is_paid_and_confirmed(
        self, client: AsyncClient, booking_payload, notifier, owner, fetch_booking
    ) -> None:
        payload = booking_payload()
        del payload["package_id"]
        response = await client.post("/api/v1/bookings/offline", json=payload)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["booking"]["payment_status"] == "success"
        assert BOOK_TXN_PATTERN.match(data["booking"]["payment_txn_id"])
        assert data["accommodation"]["name"] == "Lakeside Tents"
        assert data["owner_email"] == owner.email
        assert data["confirmation_sent"] is True

        notifier.send_confirmation.assert_awaited_once()
        confirmation = notifier.send_confirmation.await_args.args[0]
        assert confirmation.booking_id == data["booking"]["id"]
        assert confirmation.guest_email == "asha@example.com"
        assert confirmation.owner_email == owner.email

        stored = await fetch_booking(data["booking"]["id"])
        assert stored.payment_status == "success"

    async def test_mail_failure_does_not_fail_booking(
        self, client: AsyncClient, booking_payload, notifier, fetch_booking
    ) -> None:
        notifier.send_confirmation.side_effect = NotificationError("relay down")
        response = await client.post("/api/v1/bookings/offline", json=booking_payload())
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["confirmation_sent"] is False

        stored = await fetch_booking(data["booking"]["id"])
        assert stored.payment_status == "success"

    async def test_guest_email_required(self, client: AsyncClient, booking_payload, notifier) -> None:
        payload = booking_payload()
        del payload["guest_email"]
        response = await client.post("/api/v1/bookings/offline", json=payload)
        assert response.status_code == 422
        notifier.send_confirmation.assert_not_awaited()

    async def test_meal_rule_applies(self, client: AsyncClient, booking_payload) -> None:
        response = await client.post(
            "/api/v1/bookings/offline",
            json=booking_payload(adults=2, food_veg=1, food_jain=2),
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/v1/bookings
# ---------------------------------------------------------------------------


class TestListBookings:
    """Tests for the paginated booking list."""

    async def test_list_newest_first_with_pagination(
        self, client: AsyncClient, make_booking
    ) -> None:
        now = utcnow()
        oldest = await make_booking(created_at=now - timedelta(hours=3))
        middle = await make_booking(created_at=now - timedelta(hours=2))
        newest = await make_booking(created_at=now - timedelta(hours=1))

        response = await client.get("/api/v1/bookings", params={"page": 1, "limit": 2})
        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["data"]] == [newest.id, middle.id]
        assert body["data"][0]["accommodation_name"] == "Lakeside Tents"
        assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}

        response = await client.get("/api/v1/bookings", params={"page": 2, "limit": 2})
        assert [item["id"] for item in response.json()["data"]] == [oldest.id]

    async def test_empty_list(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/bookings")
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 0
        assert body["pagination"]["total_pages"] == 0

    async def test_invalid_page_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/bookings", params={"page": 0})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/v1/bookings/details/{txnid}
# ---------------------------------------------------------------------------


class TestBookingDetails:
    """Tests for booking lookup by transaction id."""

    async def test_details_found(self, client: AsyncClient, make_booking, owner) -> None:
        booking = await make_booking(payment_status="success")
        response = await client.get(f"/api/v1/bookings/details/{booking.payment_txn_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["booking"]["id"] == booking.id
        assert body["accommodation"]["name"] == "Lakeside Tents"
        assert body["owner_email"] == owner.email
        assert body["booked_date"] == booking.created_at.date().isoformat()

    async def test_details_not_found(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/bookings/details/PAYU-missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Booking not found"


# ---------------------------------------------------------------------------
# GET /api/v1/bookings/room-occupancy
# ---------------------------------------------------------------------------


class TestRoomOccupancy:
    """Tests for rooms taken on a check-in date."""

    async def test_counts_only_paid_bookings_on_date(
        self, client: AsyncClient, make_booking, accommodation
    ) -> None:
        await make_booking(payment_status="success", rooms=2)
        await make_booking(payment_status="success", rooms=1)
        await make_booking(payment_status="pending", rooms=4)
        await make_booking(payment_status="expired", rooms=4)
        await make_booking(
            payment_status="success",
            rooms=3,
            check_in=date(2025, 6, 2),
            check_out=date(2025, 6, 4),
        )

        response = await client.get(
            "/api/v1/bookings/room-occupancy",
            params={"check_in": "2025-06-01", "id": accommodation.id},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "date": "2025-06-01", "total_rooms": 3}

    async def test_no_bookings_returns_zero(self, client: AsyncClient, accommodation) -> None:
        response = await client.get(
            "/api/v1/bookings/room-occupancy",
            params={"check_in": "2025-07-01", "id": accommodation.id},
        )
        assert response.status_code == 200
        assert response.json()["total_rooms"] == 0

    async def test_missing_parameters_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/bookings/room-occupancy", params={"check_in": "2025-06-01"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# PUT /api/v1/bookings/{booking_id}/status
# ---------------------------------------------------------------------------


class TestManualStatusOverride:
    """Tests for the administrative payment status override."""

    async def test_override_status(
        self, client: AsyncClient, make_booking, notifier, fetch_booking
    ) -> None:
        booking = await make_booking(payment_status="expired")
        response = await client.put(
            f"/api/v1/bookings/{booking.id}/status",
            json={"payment_status": "success"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Payment status updated"}

        stored = await fetch_booking(booking.id)
        assert stored.payment_status == "success"
        notifier.send_confirmation.assert_not_awaited()

    async def test_missing_booking_returns_404(self, client: AsyncClient) -> None:
        response = await client.put("/api/v1/bookings/7/status", json={"payment_status": "success"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Booking not found"

    async def test_unknown_status_rejected(self, client: AsyncClient, make_booking) -> None:
        booking = await make_booking()
        response = await client.put(
            f"/api/v1/bookings/{booking.id}/status",
            json={"payment_status": "refunded"},
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
