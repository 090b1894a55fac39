"""
Booking workflow.

Status lifecycle:
    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled

By default any status may follow any other; with strict transitions enabled
the table above is enforced and anything else is a 409.
"""
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from vendorhive.api.middleware.error_handler import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from vendorhive.lib.logging import get_logger, log_with_context
from vendorhive.lib.metrics import MetricsCollector, get_metrics_collector
from vendorhive.schemas import Booking, BookingStatus, NewBooking
from vendorhive.services.authorization import Actor, Capability, authorize, status_capability
from vendorhive.storage.base import Storage

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    """Whether ``current -> new`` is in the lifecycle table (staying put is always fine)."""
    current, new = BookingStatus(current), BookingStatus(new)
    return current == new or new in ALLOWED_TRANSITIONS[current]


class BookingService:
    """Create, list and move bookings through their lifecycle."""

    def __init__(
        self,
        storage: Storage,
        strict_transitions: bool = False,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.storage = storage
        self.strict_transitions = strict_transitions
        self.metrics = metrics or get_metrics_collector()

    def create_booking(
        self,
        actor: Actor,
        vendor_id: int,
        date: datetime,
        service_id: Optional[int] = None,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Booking:
        """Book a vendor (optionally one of its services) for the caller.

        Raises:
            ForbiddenException: booking on behalf of someone else, or own business
            NotFoundException: vendor does not exist
            BadRequestException: service missing or offered by another vendor
        """
        if user_id is not None and user_id != actor.user_id:
            raise ForbiddenException("You can only create bookings for yourself")

        vendor = self.storage.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundException("Vendor", vendor_id)

        if service_id is not None:
            service = self.storage.get_service(service_id)
            if service is None or service.vendor_id != vendor_id:
                raise BadRequestException(
                    "Service does not belong to this vendor",
                    details={"service_id": service_id, "vendor_id": vendor_id},
                )

        authorize(actor, Capability.CREATE_BOOKING, vendor)

        booking = self.storage.create_booking(NewBooking(
            user_id=actor.user_id,
            vendor_id=vendor_id,
            service_id=service_id,
            date=date,
            notes=notes,
        ))
        self.metrics.increment_bookings_created()
        log_with_context(
            logger, "info", "Booking created",
            booking_id=booking.id,
            user_id=actor.user_id,
            vendor_id=vendor_id,
            service_id=service_id,
        )
        return booking

    def list_for_user(self, actor: Actor) -> List[Booking]:
        return self.storage.list_bookings_by_user(actor.user_id)

    def list_for_vendor(self, actor: Actor) -> List[Booking]:
        """Bookings received by the caller's vendor profile."""
        authorize(actor, Capability.VIEW_VENDOR_BOOKINGS)
        vendor = self.storage.get_vendor_by_user_id(actor.user_id)
        if vendor is None:
            raise NotFoundException("Vendor profile")
        return self.storage.list_bookings_by_vendor(vendor.id)

    def update_status(self, actor: Actor, booking_id: int, status: BookingStatus) -> Booking:
        """Set a booking's status.

        The owning vendor may set any status; the customer may only cancel.

        Raises:
            NotFoundException: booking does not exist
            ForbiddenException: caller may not make this change
            ConflictException: strict transitions enabled and the move is illegal
        """
        status = BookingStatus(status)
        booking = self.storage.get_booking(booking_id)
        if booking is None:
            raise NotFoundException("Booking", booking_id)

        authorize(actor, status_capability(status), booking)

        if self.strict_transitions and not can_transition(booking.status, status):
            raise ConflictException(
                f"Cannot change booking status from {booking.status.value} to {status.value}",
                details={"current": booking.status.value, "requested": status.value},
            )

        updated = self.storage.update_booking_status(booking_id, status)
        if updated is None:
            raise NotFoundException("Booking", booking_id)

        self.metrics.increment_booking_status(status=status.value)
        log_with_context(
            logger, "info", "Booking status updated",
            booking_id=booking_id,
            previous_status=booking.status.value,
            status=status.value,
            actor_id=actor.user_id,
        )
        return updated
