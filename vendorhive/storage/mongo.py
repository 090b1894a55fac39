"""
MongoDB storage backend built on pymongo.

Documents keep the integer ``id`` of the domain records next to Mongo's own
``_id`` (which is never returned). IDs come from a ``counters`` collection
incremented atomically.
"""
import enum
import re
from typing import Any, Dict, List, Optional

from pydantic_core import to_jsonable_python
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from vendorhive.lib.logging import get_logger
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

logger = get_logger(__name__)

COLLECTIONS = ("users", "vendors", "services", "bookings", "reviews")

# Fields BSON cannot hold natively (dates, nested models) are stored as JSON
JSON_FIELDS = frozenset({"service_tags", "business_hours", "time_slots", "available_dates"})

PROJECTION = {"_id": 0}


def _to_document(data: Dict[str, Any]) -> Dict[str, Any]:
    document = {}
    for key, value in data.items():
        if isinstance(value, enum.Enum):
            value = value.value
        elif key in JSON_FIELDS:
            value = to_jsonable_python(value)
        document[key] = value
    return document


def _duplicate_field(error: DuplicateKeyError) -> str:
    details = error.details or {}
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return next(iter(key_pattern))
    message = str(error)
    for field in ("email", "username", "user_id", "vendor_id"):
        if field in message:
            return field
    return "id"


class MongoStorage(Storage):
    """Document storage on MongoDB."""

    name = "mongo"

    def __init__(self, uri: str, database_name: str, client: Optional[MongoClient] = None):
        self.uri = uri
        self.database_name = database_name
        self._client = client
        self._owns_client = client is None
        self.db = None

    def open(self) -> None:
        if self._client is None:
            self._client = MongoClient(self.uri, serverSelectionTimeoutMS=5000)
        # Fails fast when the server is unreachable
        self._client.server_info()
        self.db = self._client[self.database_name]

        for collection in COLLECTIONS:
            self.db[collection].create_index([("id", ASCENDING)], unique=True)
        self.db.users.create_index([("email", ASCENDING)], unique=True)
        self.db.users.create_index([("username", ASCENDING)], unique=True)
        self.db.vendors.create_index([("user_id", ASCENDING)], unique=True)
        self.db.services.create_index([("vendor_id", ASCENDING)])
        self.db.bookings.create_index([("user_id", ASCENDING), ("date", DESCENDING)])
        self.db.bookings.create_index([("vendor_id", ASCENDING), ("date", DESCENDING)])
        self.db.reviews.create_index(
            [("user_id", ASCENDING), ("vendor_id", ASCENDING)], unique=True
        )
        logger.info("Mongo storage ready", extra={"database": self.database_name})

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self.db = None

    def _next_id(self, entity: str) -> int:
        counter = self.db.counters.find_one_and_update(
            {"_id": entity},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    def _find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.db[collection].find_one(query, PROJECTION)

    def _insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        document = {"id": self._next_id(collection), **document}
        # insert_one adds _id to the dict it is given
        self.db[collection].insert_one(dict(document))
        return document

    def _set(self, collection: str, record_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not changes:
            return self._find_one(collection, {"id": record_id})
        return self.db[collection].find_one_and_update(
            {"id": record_id},
            {"$set": _to_document(changes)},
            projection=PROJECTION,
            return_document=ReturnDocument.AFTER,
        )

    # ===== Users =====

    def get_user(self, user_id: int) -> Optional[User]:
        doc = self._find_one("users", {"id": user_id})
        return User.model_validate(doc) if doc else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        doc = self._find_one("users", {"email": email})
        return User.model_validate(doc) if doc else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        doc = self._find_one("users", {"username": username})
        return User.model_validate(doc) if doc else None

    def _check_user_unique(self, email: Optional[str], username: Optional[str], exclude_id: Optional[int] = None):
        not_self = {"id": {"$ne": exclude_id}} if exclude_id is not None else {}
        if email is not None and self.db.users.count_documents({"email": email, **not_self}, limit=1):
            raise DuplicateRecordError("email", "Email already in use")
        if username is not None and self.db.users.count_documents({"username": username, **not_self}, limit=1):
            raise DuplicateRecordError("username", "Username already taken")

    def create_user(self, new_user: NewUser) -> User:
        self._check_user_unique(new_user.email, new_user.username)
        try:
            doc = self._insert("users", {**_to_document(new_user.model_dump()), "joined_at": utcnow()})
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            raise DuplicateRecordError(field, f"{field.capitalize()} already in use") from e
        return User.model_validate(doc)

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]:
        self._check_user_unique(changes.get("email"), changes.get("username"), exclude_id=user_id)
        try:
            doc = self._set("users", user_id, changes)
        except DuplicateKeyError as e:
            field = _duplicate_field(e)
            raise DuplicateRecordError(field, f"{field.capitalize()} already in use") from e
        return User.model_validate(doc) if doc else None

    # ===== Vendors =====

    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        doc = self._find_one("vendors", {"id": vendor_id})
        return Vendor.model_validate(doc) if doc else None

    def get_vendor_by_user_id(self, user_id: int) -> Optional[Vendor]:
        doc = self._find_one("vendors", {"user_id": user_id})
        return Vendor.model_validate(doc) if doc else None

    def create_vendor(self, new_vendor: NewVendor) -> Vendor:
        document = {
            **_to_document(new_vendor.model_dump()),
            "rating": 0,
            "review_count": 0,
            "rating_total": 0,
        }
        try:
            doc = self._insert("vendors", document)
        except DuplicateKeyError as e:
            raise DuplicateRecordError("user_id", "Vendor profile already exists") from e
        return Vendor.model_validate(doc)

    def update_vendor(self, vendor_id: int, changes: Dict[str, Any]) -> Optional[Vendor]:
        doc = self._set("vendors", vendor_id, changes)
        return Vendor.model_validate(doc) if doc else None

    def _vendors_with_existing_user(self, query: Dict[str, Any]) -> List[Vendor]:
        docs = list(self.db.vendors.find(query, PROJECTION).sort("id", ASCENDING))
        user_ids = {
            u["id"] for u in self.db.users.find(
                {"id": {"$in": [d["user_id"] for d in docs]}}, {"_id": 0, "id": 1}
            )
        }
        return [Vendor.model_validate(d) for d in docs if d["user_id"] in user_ids]

    def list_vendors(self) -> List[Vendor]:
        return self._vendors_with_existing_user({})

    def search_vendors(self, query: str) -> List[Vendor]:
        pattern = {"$regex": re.escape(query), "$options": "i"}
        matching_users = [
            u["id"] for u in self.db.users.find({"name": pattern}, {"_id": 0, "id": 1})
        ]
        return self._vendors_with_existing_user({
            "$or": [
                {"business_name": pattern},
                {"category": pattern},
                {"description": pattern},
                {"user_id": {"$in": matching_users}},
            ]
        })

    def record_vendor_rating(self, vendor_id: int, rating: int) -> Optional[Vendor]:
        doc = self.db.vendors.find_one_and_update(
            {"id": vendor_id},
            {"$inc": {"rating_total": rating, "review_count": 1}},
            projection=PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        doc["rating"] = rounded_average(doc["rating_total"], doc["review_count"])
        # Skipped when a later increment already moved the count on
        self.db.vendors.update_one(
            {"id": vendor_id, "review_count": doc["review_count"]},
            {"$set": {"rating": doc["rating"]}},
        )
        return Vendor.model_validate(doc)

    # ===== Services =====

    def create_service(self, new_service: NewService) -> Service:
        doc = self._insert("services", {**_to_document(new_service.model_dump()), "created_at": utcnow()})
        return Service.model_validate(doc)

    def get_service(self, service_id: int) -> Optional[Service]:
        doc = self._find_one("services", {"id": service_id})
        return Service.model_validate(doc) if doc else None

    def list_services(
        self,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Service]:
        query: Dict[str, Any] = {}
        if vendor_id is not None:
            query["vendor_id"] = vendor_id
        if category is not None:
            query["category"] = {"$regex": f"^{re.escape(category)}$", "$options": "i"}
        if available is not None:
            query["availability"] = available
        docs = self.db.services.find(query, PROJECTION).sort("id", ASCENDING)
        return [Service.model_validate(d) for d in docs]

    def update_service(self, service_id: int, changes: Dict[str, Any]) -> Optional[Service]:
        doc = self._set("services", service_id, changes)
        return Service.model_validate(doc) if doc else None

    def delete_service(self, service_id: int) -> bool:
        return self.db.services.delete_one({"id": service_id}).deleted_count > 0

    # ===== Bookings =====

    def create_booking(self, new_booking: NewBooking) -> Booking:
        doc = self._insert("bookings", _to_document(new_booking.model_dump()))
        return Booking.model_validate(doc)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        doc = self._find_one("bookings", {"id": booking_id})
        return Booking.model_validate(doc) if doc else None

    def _bookings_where(self, query: Dict[str, Any]) -> List[Booking]:
        docs = self.db.bookings.find(query, PROJECTION).sort([("date", DESCENDING), ("id", DESCENDING)])
        return [Booking.model_validate(d) for d in docs]

    def list_bookings_by_user(self, user_id: int) -> List[Booking]:
        return self._bookings_where({"user_id": user_id})

    def list_bookings_by_vendor(self, vendor_id: int) -> List[Booking]:
        return self._bookings_where({"vendor_id": vendor_id})

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        doc = self._set("bookings", booking_id, {"status": BookingStatus(status)})
        return Booking.model_validate(doc) if doc else None

    # ===== Reviews =====

    def create_review(self, new_review: NewReview) -> Review:
        try:
            doc = self._insert("reviews", {**_to_document(new_review.model_dump()), "created_at": utcnow()})
        except DuplicateKeyError as e:
            raise DuplicateRecordError("vendor_id", "You have already reviewed this vendor") from e
        return Review.model_validate(doc)

    def get_review_by_user_and_vendor(self, user_id: int, vendor_id: int) -> Optional[Review]:
        doc = self._find_one("reviews", {"user_id": user_id, "vendor_id": vendor_id})
        return Review.model_validate(doc) if doc else None

    def list_reviews_by_vendor(self, vendor_id: int) -> List[Review]:
        docs = self.db.reviews.find({"vendor_id": vendor_id}, PROJECTION).sort(
            [("created_at", DESCENDING), ("id", DESCENDING)]
        )
        return [Review.model_validate(d) for d in docs]
