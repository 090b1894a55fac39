"""
Domain records shared by every storage backend.

Each record mirrors one collection/table:
- User -> "users"
- Vendor -> "vendors"
- Service -> "services"
- Booking -> "bookings"
- Review -> "reviews"

Attributes are snake_case in Python and camelCase on the wire
(``business_name`` <-> ``businessName``). Both spellings are accepted as input.
"""
import enum
from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(str, enum.Enum):
    """User role enumeration."""
    USER = "user"
    VENDOR = "vendor"


class BookingStatus(str, enum.Enum):
    """Booking status lifecycle: pending -> confirmed -> completed (or cancelled)."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise to an aware UTC datetime.

    Backends that drop tzinfo (SQLite, BSON) hand back naive UTC values, and
    naive client input is taken to be UTC as well.
    """
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Base model serialising to camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TimeSlot(CamelModel):
    """Descriptive opening slot of a service, e.g. Monday 09:00-12:00."""
    day: str
    start_time: str
    end_time: str


# ===== Users =====

class UserPublic(CamelModel):
    """User as exposed over the API (never carries the password hash)."""
    id: int
    name: str
    username: str
    email: str
    role: UserRole = UserRole.USER
    profile_image: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    joined_at: UtcDatetime


class User(UserPublic):
    """Stored user record."""
    password: str

    def to_public(self) -> UserPublic:
        return UserPublic.model_validate(self.model_dump(exclude={"password"}))


class NewUser(BaseModel):
    name: str
    username: str
    email: str
    password: str
    role: UserRole = UserRole.USER
    profile_image: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None


# ===== Vendors =====

class Vendor(CamelModel):
    """
    Vendor business profile (1:1 with a User of role vendor).

    ``rating`` and ``review_count`` are derived from reviews. ``rating_total``
    is the running sum of review ratings and is never serialised.
    """
    id: int
    user_id: int
    business_name: str
    category: str
    description: str = ""
    service_tags: Optional[List[str]] = None
    business_hours: Optional[Dict[str, Any]] = None
    cover_image: Optional[str] = None
    rating: int = 0
    review_count: int = 0
    rating_total: int = Field(default=0, exclude=True)


class NewVendor(BaseModel):
    user_id: int
    business_name: str
    category: str
    description: str = ""
    service_tags: Optional[List[str]] = None
    business_hours: Optional[Dict[str, Any]] = None
    cover_image: Optional[str] = None


# ===== Services =====

class Service(CamelModel):
    """Service listing offered by a vendor."""
    id: int
    vendor_id: int
    name: str
    category: str
    description: str
    price: str
    duration: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    time_slots: List[TimeSlot] = Field(default_factory=list)
    available_dates: List[date] = Field(default_factory=list)
    availability: bool = True
    created_at: UtcDatetime


class NewService(BaseModel):
    vendor_id: int
    name: str
    category: str
    description: str
    price: str
    duration: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    time_slots: List[TimeSlot] = Field(default_factory=list)
    available_dates: List[date] = Field(default_factory=list)
    availability: bool = True


# ===== Bookings =====

class Booking(CamelModel):
    """Customer request to engage a vendor (optionally for one service)."""
    id: int
    user_id: int
    vendor_id: int
    service_id: Optional[int] = None
    date: UtcDatetime
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = None


class NewBooking(BaseModel):
    user_id: int
    vendor_id: int
    service_id: Optional[int] = None
    date: UtcDatetime
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = None


# ===== Reviews =====

class Review(CamelModel):
    """A user's rating and comment for a vendor."""
    id: int
    user_id: int
    vendor_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    created_at: UtcDatetime


class NewReview(BaseModel):
    user_id: int
    vendor_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


# ===== Composite responses =====

class VendorWithUser(Vendor):
    user: UserPublic


class ReviewWithUser(Review):
    user: UserPublic


class VendorDetail(VendorWithUser):
    services: List[Service] = Field(default_factory=list)
    reviews: List[ReviewWithUser] = Field(default_factory=list)
