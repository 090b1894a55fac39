"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from vendorhive.models.users import UserRow
from vendorhive.models.vendors import VendorRow
from vendorhive.models.services import ServiceRow
from vendorhive.models.bookings import BookingRow
from vendorhive.models.reviews import ReviewRow

__all__ = [
    "UserRow",
    "VendorRow",
    "ServiceRow",
    "BookingRow",
    "ReviewRow",
]
