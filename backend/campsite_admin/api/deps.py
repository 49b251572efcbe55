"""Shared API dependencies — single import point for all routers.

Re-exports the database session and builds the collaborators each request
needs from the process-wide settings::

    from campsite_admin.api.deps import get_db, get_payment_gateway
"""

from fastapi import Depends

from campsite_admin.config import Settings, get_settings
from campsite_admin.database import get_db
from campsite_admin.notifications import BookingNotifier
from campsite_admin.payments.payu_client import PayUClient


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> PayUClient:
    return PayUClient(settings)


def get_notifier(settings: Settings = Depends(get_settings)) -> BookingNotifier:
    return BookingNotifier(settings)


__all__ = [
    "get_db",
    "get_settings",
    "get_payment_gateway",
    "get_notifier",
]
