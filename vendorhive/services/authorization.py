"""
Authorization policy.

Every role and ownership rule lives in ``authorize``; services call it with the
acting user, the capability they need and the resource being touched.
"""
import enum
from dataclasses import dataclass
from typing import Any, Optional

from vendorhive.api.middleware.error_handler import ForbiddenException
from vendorhive.schemas import Booking, BookingStatus, Service, UserRole, Vendor


@dataclass(frozen=True)
class Actor:
    """The authenticated caller; ``vendor_id`` is set when they own a vendor profile."""
    user_id: int
    role: UserRole
    vendor_id: Optional[int] = None

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR


class Capability(str, enum.Enum):
    CREATE_SERVICE = "create_service"
    MANAGE_SERVICE = "manage_service"
    UPDATE_VENDOR_PROFILE = "update_vendor_profile"
    VIEW_VENDOR_BOOKINGS = "view_vendor_bookings"
    CREATE_BOOKING = "create_booking"
    UPDATE_BOOKING_STATUS = "update_booking_status"
    CANCEL_BOOKING = "cancel_booking"
    CREATE_REVIEW = "create_review"


def _owns_vendor(actor: Actor, vendor_id: int) -> bool:
    return actor.vendor_id is not None and actor.vendor_id == vendor_id


def is_allowed(actor: Actor, capability: Capability, resource: Any = None) -> bool:
    """
    Decide a capability for ``actor``.

    Resources by capability:
      - CREATE_SERVICE, UPDATE_VENDOR_PROFILE, VIEW_VENDOR_BOOKINGS: none
      - MANAGE_SERVICE: Service
      - CREATE_BOOKING, CREATE_REVIEW: target Vendor
      - UPDATE_BOOKING_STATUS, CANCEL_BOOKING: Booking
    """
    if capability in (
        Capability.CREATE_SERVICE,
        Capability.UPDATE_VENDOR_PROFILE,
        Capability.VIEW_VENDOR_BOOKINGS,
    ):
        return actor.is_vendor

    if capability == Capability.MANAGE_SERVICE:
        return actor.is_vendor and isinstance(resource, Service) and _owns_vendor(actor, resource.vendor_id)

    if capability in (Capability.CREATE_BOOKING, Capability.CREATE_REVIEW):
        return isinstance(resource, Vendor) and not _owns_vendor(actor, resource.id)

    if capability == Capability.UPDATE_BOOKING_STATUS:
        return isinstance(resource, Booking) and _owns_vendor(actor, resource.vendor_id)

    if capability == Capability.CANCEL_BOOKING:
        return isinstance(resource, Booking) and (
            resource.user_id == actor.user_id or _owns_vendor(actor, resource.vendor_id)
        )

    return False


DENIAL_MESSAGES = {
    Capability.CREATE_SERVICE: "Only vendors can create services",
    Capability.MANAGE_SERVICE: "You can only modify your own services",
    Capability.UPDATE_VENDOR_PROFILE: "Only vendors can update a vendor profile",
    Capability.VIEW_VENDOR_BOOKINGS: "Only vendors can view vendor bookings",
    Capability.CREATE_BOOKING: "You cannot book your own business",
    Capability.UPDATE_BOOKING_STATUS: "You are not allowed to change this booking",
    Capability.CANCEL_BOOKING: "You are not allowed to cancel this booking",
    Capability.CREATE_REVIEW: "You cannot review your own business",
}


def authorize(actor: Actor, capability: Capability, resource: Any = None) -> None:
    """Raise ForbiddenException unless ``actor`` holds ``capability`` on ``resource``."""
    if not is_allowed(actor, capability, resource):
        raise ForbiddenException(DENIAL_MESSAGES[capability])


def status_capability(status: BookingStatus) -> Capability:
    """Capability needed to move a booking to ``status``."""
    if BookingStatus(status) == BookingStatus.CANCELLED:
        return Capability.CANCEL_BOOKING
    return Capability.UPDATE_BOOKING_STATUS
