"""
SQL storage backend built on SQLAlchemy 2.x.

Integer autoincrement keys provide the ID sequence; the vendor rating
aggregate is maintained with a single UPDATE statement.
"""
from typing import Any, Dict, List, Optional

from pydantic_core import to_jsonable_python
from sqlalchemy import delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from vendorhive.lib.db import build_engine, build_session_factory, init_db, session_scope
from vendorhive.lib.logging import get_logger
from vendorhive.models import BookingRow, ReviewRow, ServiceRow, UserRow, VendorRow
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
from vendorhive.storage.base import DuplicateRecordError, Storage

logger = get_logger(__name__)

# Columns stored as JSON documents
JSON_COLUMNS = frozenset({"service_tags", "business_hours", "time_slots", "available_dates"})


def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: to_jsonable_python(value) if key in JSON_COLUMNS else value
        for key, value in data.items()
    }


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlStorage(Storage):
    """Relational storage (SQLite, PostgreSQL) accessed through the ORM."""

    name = "sql"

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine = None
        self._session_factory: Optional[sessionmaker] = None

    def open(self) -> None:
        self._engine = build_engine(self.database_url, echo=self.echo)
        init_db(self._engine)
        self._session_factory = build_session_factory(self._engine)
        logger.info("SQL storage ready", extra={"dialect": self._engine.dialect.name})

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _session(self):
        if self._session_factory is None:
            raise RuntimeError("SqlStorage used before open()")
        return session_scope(self._session_factory)

    # ===== Users =====

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return User.model_validate(row) if row else None

    def _user_where(self, *criteria) -> Optional[User]:
        with self._session() as session:
            row = session.execute(select(UserRow).where(*criteria)).scalar_one_or_none()
            return User.model_validate(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._user_where(UserRow.email == email)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._user_where(UserRow.username == username)

    @staticmethod
    def _check_user_unique(session: Session, email: Optional[str], username: Optional[str], exclude_id: Optional[int] = None):
        if email is not None:
            stmt = select(UserRow.id).where(UserRow.email == email)
            if exclude_id is not None:
                stmt = stmt.where(UserRow.id != exclude_id)
            if session.execute(stmt).first():
                raise DuplicateRecordError("email", "Email already in use")
        if username is not None:
            stmt = select(UserRow.id).where(UserRow.username == username)
            if exclude_id is not None:
                stmt = stmt.where(UserRow.id != exclude_id)
            if session.execute(stmt).first():
                raise DuplicateRecordError("username", "Username already taken")

    def create_user(self, new_user: NewUser) -> User:
        try:
            with self._session() as session:
                self._check_user_unique(session, new_user.email, new_user.username)
                row = UserRow(**new_user.model_dump())
                session.add(row)
                session.flush()
                return User.model_validate(row)
        except IntegrityError as e:
            raise DuplicateRecordError("email", "Email or username already in use") from e

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            self._check_user_unique(session, changes.get("email"), changes.get("username"), exclude_id=user_id)
            for key, value in _column_values(changes).items():
                setattr(row, key, value)
            session.flush()
            return User.model_validate(row)

    # ===== Vendors =====

    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        with self._session() as session:
            row = session.get(VendorRow, vendor_id)
            return Vendor.model_validate(row) if row else None

    def get_vendor_by_user_id(self, user_id: int) -> Optional[Vendor]:
        with self._session() as session:
            row = session.execute(
                select(VendorRow).where(VendorRow.user_id == user_id)
            ).scalar_one_or_none()
            return Vendor.model_validate(row) if row else None

    def create_vendor(self, new_vendor: NewVendor) -> Vendor:
        try:
            with self._session() as session:
                row = VendorRow(**_column_values(new_vendor.model_dump()))
                session.add(row)
                session.flush()
                return Vendor.model_validate(row)
        except IntegrityError as e:
            raise DuplicateRecordError("user_id", "Vendor profile already exists") from e

    def update_vendor(self, vendor_id: int, changes: Dict[str, Any]) -> Optional[Vendor]:
        with self._session() as session:
            row = session.get(VendorRow, vendor_id)
            if row is None:
                return None
            for key, value in _column_values(changes).items():
                setattr(row, key, value)
            session.flush()
            return Vendor.model_validate(row)

    def list_vendors(self) -> List[Vendor]:
        with self._session() as session:
            rows = session.execute(
                select(VendorRow)
                .join(UserRow, UserRow.id == VendorRow.user_id)
                .order_by(VendorRow.id)
            ).scalars().all()
            return [Vendor.model_validate(r) for r in rows]

    def search_vendors(self, query: str) -> List[Vendor]:
        pattern = _like_pattern(query)
        with self._session() as session:
            rows = session.execute(
                select(VendorRow)
                .join(UserRow, UserRow.id == VendorRow.user_id)
                .where(or_(
                    VendorRow.business_name.ilike(pattern, escape="\\"),
                    VendorRow.category.ilike(pattern, escape="\\"),
                    VendorRow.description.ilike(pattern, escape="\\"),
                    UserRow.name.ilike(pattern, escape="\\"),
                ))
                .order_by(VendorRow.id)
            ).scalars().all()
            return [Vendor.model_validate(r) for r in rows]

    def record_vendor_rating(self, vendor_id: int, rating: int) -> Optional[Vendor]:
        new_total = VendorRow.rating_total + rating
        new_count = VendorRow.review_count + 1
        with self._session() as session:
            # Right-hand sides see the pre-update row, so one statement is atomic
            result = session.execute(
                update(VendorRow)
                .where(VendorRow.id == vendor_id)
                .values(
                    rating_total=new_total,
                    review_count=new_count,
                    rating=(2 * new_total + new_count) // (2 * new_count),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            row = session.execute(
                select(VendorRow).where(VendorRow.id == vendor_id).execution_options(populate_existing=True)
            ).scalar_one()
            return Vendor.model_validate(row)

    # ===== Services =====

    def create_service(self, new_service: NewService) -> Service:
        with self._session() as session:
            row = ServiceRow(**_column_values(new_service.model_dump()))
            session.add(row)
            session.flush()
            return Service.model_validate(row)

    def get_service(self, service_id: int) -> Optional[Service]:
        with self._session() as session:
            row = session.get(ServiceRow, service_id)
            return Service.model_validate(row) if row else None

    def list_services(
        self,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Service]:
        stmt = select(ServiceRow)
        if vendor_id is not None:
            stmt = stmt.where(ServiceRow.vendor_id == vendor_id)
        if category is not None:
            stmt = stmt.where(func.lower(ServiceRow.category) == category.lower())
        if available is not None:
            stmt = stmt.where(ServiceRow.availability == available)
        with self._session() as session:
            rows = session.execute(stmt.order_by(ServiceRow.id)).scalars().all()
            return [Service.model_validate(r) for r in rows]

    def update_service(self, service_id: int, changes: Dict[str, Any]) -> Optional[Service]:
        with self._session() as session:
            row = session.get(ServiceRow, service_id)
            if row is None:
                return None
            for key, value in _column_values(changes).items():
                setattr(row, key, value)
            session.flush()
            return Service.model_validate(row)

    def delete_service(self, service_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(ServiceRow).where(ServiceRow.id == service_id))
            return result.rowcount > 0

    # ===== Bookings =====

    def create_booking(self, new_booking: NewBooking) -> Booking:
        with self._session() as session:
            row = BookingRow(**new_booking.model_dump())
            session.add(row)
            session.flush()
            return Booking.model_validate(row)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            return Booking.model_validate(row) if row else None

    def _bookings_where(self, *criteria) -> List[Booking]:
        with self._session() as session:
            rows = session.execute(
                select(BookingRow).where(*criteria).order_by(desc(BookingRow.date), desc(BookingRow.id))
            ).scalars().all()
            return [Booking.model_validate(r) for r in rows]

    def list_bookings_by_user(self, user_id: int) -> List[Booking]:
        return self._bookings_where(BookingRow.user_id == user_id)

    def list_bookings_by_vendor(self, vendor_id: int) -> List[Booking]:
        return self._bookings_where(BookingRow.vendor_id == vendor_id)

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        with self._session() as session:
            row = session.get(BookingRow, booking_id)
            if row is None:
                return None
            row.status = BookingStatus(status)
            session.flush()
            return Booking.model_validate(row)

    # ===== Reviews =====

    def create_review(self, new_review: NewReview) -> Review:
        try:
            with self._session() as session:
                row = ReviewRow(**new_review.model_dump())
                session.add(row)
                session.flush()
                return Review.model_validate(row)
        except IntegrityError as e:
            raise DuplicateRecordError("vendor_id", "You have already reviewed this vendor") from e

    def get_review_by_user_and_vendor(self, user_id: int, vendor_id: int) -> Optional[Review]:
        with self._session() as session:
            row = session.execute(
                select(ReviewRow).where(ReviewRow.user_id == user_id, ReviewRow.vendor_id == vendor_id)
            ).scalar_one_or_none()
            return Review.model_validate(row) if row else None

    def list_reviews_by_vendor(self, vendor_id: int) -> List[Review]:
        with self._session() as session:
            rows = session.execute(
                select(ReviewRow)
                .where(ReviewRow.vendor_id == vendor_id)
                .order_by(desc(ReviewRow.created_at), desc(ReviewRow.id))
            ).scalars().all()
            return [Review.model_validate(r) for r in rows]
