"""
In-memory storage backend.

Holds every record in process-local dictionaries guarded by one lock.
Nothing survives a restart; meant for development and tests.
"""
import itertools
from threading import Lock
from typing import Any, Dict, List, Optional, TypeVar

from pydantic import BaseModel

from vendorhive.schemas import (
    Booking,
    BookingStatus,
    NewBooking,
    NewReview,
    NewService,
    NewUser,
    NewVendor,
    Review,
    Service,
    User,
    Vendor,
    utcnow,
)
from vendorhive.storage.base import DuplicateRecordError, Storage, rounded_average

RecordT = TypeVar("RecordT", bound=BaseModel)


def _apply(record: RecordT, changes: Dict[str, Any]) -> RecordT:
    """Return a re-validated copy of ``record`` with ``changes`` applied."""
    data = record.model_dump()
    data.update(changes)
    updated = type(record).model_validate(data)
    if isinstance(record, Vendor):
        updated.rating_total = changes.get("rating_total", record.rating_total)
    return updated


class MemoryStorage(Storage):
    """Dictionary-backed storage; IDs come from per-entity counters."""

    name = "memory"

    def __init__(self):
        self._lock = Lock()
        self._users: Dict[int, User] = {}
        self._vendors: Dict[int, Vendor] = {}
        self._services: Dict[int, Service] = {}
        self._bookings: Dict[int, Booking] = {}
        self._reviews: Dict[int, Review] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("users", "vendors", "services", "bookings", "reviews")
        }

    def _next_id(self, entity: str) -> int:
        return next(self._ids[entity])

    @staticmethod
    def _copy(record: Optional[RecordT]) -> Optional[RecordT]:
        return record.model_copy(deep=True) if record is not None else None

    # ===== Users =====

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._copy(self._users.get(user_id))

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._copy(next((u for u in self._users.values() if u.email == email), None))

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return self._copy(next((u for u in self._users.values() if u.username == username), None))

    def _check_user_unique(self, email: Optional[str], username: Optional[str], exclude_id: Optional[int] = None):
        for user in self._users.values():
            if user.id == exclude_id:
                continue
            if email is not None and user.email == email:
                raise DuplicateRecordError("email", "Email already in use")
            if username is not None and user.username == username:
                raise DuplicateRecordError("username", "Username already taken")

    def create_user(self, new_user: NewUser) -> User:
        with self._lock:
            self._check_user_unique(new_user.email, new_user.username)
            user = User(id=self._next_id("users"), joined_at=utcnow(), **new_user.model_dump())
            self._users[user.id] = user
            return self._copy(user)

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            self._check_user_unique(changes.get("email"), changes.get("username"), exclude_id=user_id)
            updated = _apply(user, changes)
            self._users[user_id] = updated
            return self._copy(updated)

    # ===== Vendors =====

    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        with self._lock:
            return self._copy(self._vendors.get(vendor_id))

    def get_vendor_by_user_id(self, user_id: int) -> Optional[Vendor]:
        with self._lock:
            return self._copy(next((v for v in self._vendors.values() if v.user_id == user_id), None))

    def create_vendor(self, new_vendor: NewVendor) -> Vendor:
        with self._lock:
            if any(v.user_id == new_vendor.user_id for v in self._vendors.values()):
                raise DuplicateRecordError("user_id", "Vendor profile already exists")
            vendor = Vendor(id=self._next_id("vendors"), **new_vendor.model_dump())
            self._vendors[vendor.id] = vendor
            return self._copy(vendor)

    def update_vendor(self, vendor_id: int, changes: Dict[str, Any]) -> Optional[Vendor]:
        with self._lock:
            vendor = self._vendors.get(vendor_id)
            if vendor is None:
                return None
            updated = _apply(vendor, changes)
            self._vendors[vendor_id] = updated
            return self._copy(updated)

    def list_vendors(self) -> List[Vendor]:
        with self._lock:
            return [self._copy(v) for v in self._vendors.values() if v.user_id in self._users]

    def search_vendors(self, query: str) -> List[Vendor]:
        needle = query.lower()
        with self._lock:
            results = []
            for vendor in self._vendors.values():
                user = self._users.get(vendor.user_id)
                if user is None:
                    continue
                haystacks = (vendor.business_name, vendor.category, vendor.description or "", user.name)
                if any(needle in text.lower() for text in haystacks):
                    results.append(self._copy(vendor))
            return results

    def record_vendor_rating(self, vendor_id: int, rating: int) -> Optional[Vendor]:
        with self._lock:
            vendor = self._vendors.get(vendor_id)
            if vendor is None:
                return None
            total = vendor.rating_total + rating
            count = vendor.review_count + 1
            updated = _apply(vendor, {
                "rating_total": total,
                "review_count": count,
                "rating": rounded_average(total, count),
            })
            self._vendors[vendor_id] = updated
            return self._copy(updated)

    # ===== Services =====

    def create_service(self, new_service: NewService) -> Service:
        with self._lock:
            service = Service(id=self._next_id("services"), created_at=utcnow(), **new_service.model_dump())
            self._services[service.id] = service
            return self._copy(service)

    def get_service(self, service_id: int) -> Optional[Service]:
        with self._lock:
            return self._copy(self._services.get(service_id))

    def list_services(
        self,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Service]:
        with self._lock:
            services = list(self._services.values())
        if vendor_id is not None:
            services = [s for s in services if s.vendor_id == vendor_id]
        if category is not None:
            services = [s for s in services if s.category.lower() == category.lower()]
        if available is not None:
            services = [s for s in services if s.availability == available]
        return [self._copy(s) for s in services]

    def update_service(self, service_id: int, changes: Dict[str, Any]) -> Optional[Service]:
        with self._lock:
            service = self._services.get(service_id)
            if service is None:
                return None
            updated = _apply(service, changes)
            self._services[service_id] = updated
            return self._copy(updated)

    def delete_service(self, service_id: int) -> bool:
        with self._lock:
            return self._services.pop(service_id, None) is not None

    # ===== Bookings =====

    def create_booking(self, new_booking: NewBooking) -> Booking:
        with self._lock:
            booking = Booking(id=self._next_id("bookings"), **new_booking.model_dump())
            self._bookings[booking.id] = booking
            return self._copy(booking)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        with self._lock:
            return self._copy(self._bookings.get(booking_id))

    def _bookings_where(self, **criteria) -> List[Booking]:
        with self._lock:
            matches = [
                self._copy(b) for b in self._bookings.values()
                if all(getattr(b, k) == v for k, v in criteria.items())
            ]
        return sorted(matches, key=lambda b: (b.date, b.id), reverse=True)

    def list_bookings_by_user(self, user_id: int) -> List[Booking]:
        return self._bookings_where(user_id=user_id)

    def list_bookings_by_vendor(self, vendor_id: int) -> List[Booking]:
        return self._bookings_where(vendor_id=vendor_id)

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            updated = _apply(booking, {"status": BookingStatus(status)})
            self._bookings[booking_id] = updated
            return self._copy(updated)

    # ===== Reviews =====

    def create_review(self, new_review: NewReview) -> Review:
        with self._lock:
            if any(
                r.user_id == new_review.user_id and r.vendor_id == new_review.vendor_id
                for r in self._reviews.values()
            ):
                raise DuplicateRecordError("vendor_id", "You have already reviewed this vendor")
            review = Review(id=self._next_id("reviews"), created_at=utcnow(), **new_review.model_dump())
            self._reviews[review.id] = review
            return self._copy(review)

    def get_review_by_user_and_vendor(self, user_id: int, vendor_id: int) -> Optional[Review]:
        with self._lock:
            return self._copy(next(
                (r for r in self._reviews.values() if r.user_id == user_id and r.vendor_id == vendor_id),
                None,
            ))

    def list_reviews_by_vendor(self, vendor_id: int) -> List[Review]:
        with self._lock:
            reviews = [self._copy(r) for r in self._reviews.values() if r.vendor_id == vendor_id]
        return sorted(reviews, key=lambda r: (r.created_at, r.id), reverse=True)
