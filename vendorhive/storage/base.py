"""
Storage interface between the domain services and a persistence backend.

Implementations: MemoryStorage (process memory), SqlStorage (SQLAlchemy) and
MongoStorage (pymongo). All of them return the records defined in
``vendorhive.schemas`` and accept snake_case change dictionaries for updates.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

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
)


# Vendor fields the API may never write directly
DERIVED_VENDOR_FIELDS = frozenset({"id", "user_id", "rating", "review_count", "rating_total"})


def rounded_average(total: int, count: int) -> int:
    """
    Integer mean rounded half up, e.g. 9/2 -> 5, 7/3 -> 2.

    Uses integer arithmetic so every backend (Python, SQL, Mongo) agrees.
    """
    if count <= 0:
        return 0
    return (2 * total + count) // (2 * count)


class Storage(ABC):
    """Abstract persistence backend."""

    name = "abstract"

    def open(self) -> None:
        """Acquire connections and prepare schema/indexes."""

    def close(self) -> None:
        """Release connections."""

    # ===== Users =====

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, new_user: NewUser) -> User: ...

    @abstractmethod
    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]: ...

    # ===== Vendors =====

    @abstractmethod
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]: ...

    @abstractmethod
    def get_vendor_by_user_id(self, user_id: int) -> Optional[Vendor]: ...

    @abstractmethod
    def create_vendor(self, new_vendor: NewVendor) -> Vendor: ...

    @abstractmethod
    def update_vendor(self, vendor_id: int, changes: Dict[str, Any]) -> Optional[Vendor]: ...

    @abstractmethod
    def list_vendors(self) -> List[Vendor]: ...

    @abstractmethod
    def search_vendors(self, query: str) -> List[Vendor]:
        """
        Case-insensitive substring match on business name, category,
        description and the owning user's name.
        """

    @abstractmethod
    def record_vendor_rating(self, vendor_id: int, rating: int) -> Optional[Vendor]:
        """
        Fold one new review rating into the vendor aggregate.

        Increments the running total and review count and recomputes the
        rounded average as a single atomic step of the backend.
        Returns None if the vendor does not exist.
        """

    # ===== Services =====

    @abstractmethod
    def create_service(self, new_service: NewService) -> Service: ...

    @abstractmethod
    def get_service(self, service_id: int) -> Optional[Service]: ...

    @abstractmethod
    def list_services(
        self,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Service]: ...

    @abstractmethod
    def update_service(self, service_id: int, changes: Dict[str, Any]) -> Optional[Service]: ...

    @abstractmethod
    def delete_service(self, service_id: int) -> bool: ...

    # ===== Bookings =====

    @abstractmethod
    def create_booking(self, new_booking: NewBooking) -> Booking: ...

    @abstractmethod
    def get_booking(self, booking_id: int) -> Optional[Booking]: ...

    @abstractmethod
    def list_bookings_by_user(self, user_id: int) -> List[Booking]:
        """Bookings of one customer, newest date first."""

    @abstractmethod
    def list_bookings_by_vendor(self, vendor_id: int) -> List[Booking]:
        """Bookings of one vendor, newest date first."""

    @abstractmethod
    def update_booking_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]: ...

    # ===== Reviews =====

    @abstractmethod
    def create_review(self, new_review: NewReview) -> Review: ...

    @abstractmethod
    def get_review_by_user_and_vendor(self, user_id: int, vendor_id: int) -> Optional[Review]: ...

    @abstractmethod
    def list_reviews_by_vendor(self, vendor_id: int) -> List[Review]:
        """Reviews of one vendor, newest first."""


class DuplicateRecordError(Exception):
    """A unique constraint (email, username, one review per vendor) was violated."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Duplicate value for {field}")
