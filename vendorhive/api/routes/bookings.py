"""
Booking routes.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from vendorhive.api.dependencies import get_booking_service, get_current_actor, require_role
from vendorhive.schemas import Booking, BookingStatus, CamelModel, UserRole
from vendorhive.services.authorization import Actor
from vendorhive.services.booking_service import BookingService


class CreateBookingRequest(CamelModel):
    """Booking request; ``userId`` is optional and must be the caller when given."""
    vendor_id: int
    service_id: Optional[int] = None
    date: datetime = Field(..., description="Requested date/time (ISO 8601)")
    notes: Optional[str] = None
    user_id: Optional[int] = None


class UpdateBookingStatusRequest(CamelModel):
    status: BookingStatus = Field(..., description="pending, confirmed, completed or cancelled")


router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: CreateBookingRequest,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Book a vendor for the authenticated user. New bookings start as pending."""
    return booking_service.create_booking(
        actor,
        vendor_id=request.vendor_id,
        date=request.date,
        service_id=request.service_id,
        notes=request.notes,
        user_id=request.user_id,
    )


@router.get("/user", response_model=List[Booking])
def list_user_bookings(
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """The caller's bookings, newest date first."""
    return booking_service.list_for_user(actor)


@router.get("/vendor", response_model=List[Booking])
def list_vendor_bookings(
    actor: Actor = Depends(require_role(UserRole.VENDOR)),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Bookings received by the caller's vendor profile, newest date first."""
    return booking_service.list_for_vendor(actor)


@router.put("/{booking_id}/status", response_model=Booking)
def update_booking_status(
    booking_id: int,
    request: UpdateBookingStatusRequest,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Change a booking's status.

    The vendor may set any status; the customer may only cancel.
    """
    return booking_service.update_status(actor, booking_id, request.status)
