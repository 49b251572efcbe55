"""Booking, accommodation and owner tables.

Importing this package registers every table on ``Base.metadata``; the
Alembic environment and the test schema setup both rely on that.
"""

from campsite_admin.models.accommodation import Accommodation
from campsite_admin.models.booking import Booking, PaymentStatus
from campsite_admin.models.user import User

__all__ = [
    "Accommodation",
    "Booking",
    "PaymentStatus",
    "User",
]
