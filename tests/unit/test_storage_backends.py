"""
Behaviour shared by every storage backend: memory, SQLite (SQLAlchemy) and
MongoDB (mongomock).
"""
import threading
from datetime import date, datetime, timedelta, timezone

import mongomock
import pytest

from vendorhive.schemas import (
    BookingStatus,
    NewBooking,
    NewReview,
    NewService,
    NewUser,
    NewVendor,
    TimeSlot,
    UserRole,
)
from vendorhive.storage.base import DuplicateRecordError
from vendorhive.storage.memory import MemoryStorage
from vendorhive.storage.mongo import MongoStorage
from vendorhive.storage.sql import SqlStorage

WHEN = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sql", "mongo"])
def backend(request):
    if request.param == "memory":
        storage = MemoryStorage()
    elif request.param == "sql":
        storage = SqlStorage("sqlite:///:memory:")
    else:
        storage = MongoStorage("mongodb://localhost", "vendorhive_test", client=mongomock.MongoClient())
    storage.open()
    yield storage
    storage.close()


def make_user(storage, username, role=UserRole.USER, name=None):
    return storage.create_user(NewUser(
        name=name or username.capitalize(),
        username=username,
        email=f"{username}@example.com",
        password="hashed",
        role=role,
    ))


def make_vendor(storage, username, business_name, category="Plumbing", description="", name=None):
    user = make_user(storage, username, role=UserRole.VENDOR, name=name)
    return storage.create_vendor(NewVendor(
        user_id=user.id,
        business_name=business_name,
        category=category,
        description=description,
    ))


def make_service(storage, vendor_id, name="Drain Cleaning", category="Plumbing", availability=True):
    return storage.create_service(NewService(
        vendor_id=vendor_id,
        name=name,
        category=category,
        description="Unclog drains",
        price="$50",
        time_slots=[TimeSlot(day="Monday", start_time="09:00", end_time="12:00")],
        available_dates=[date(2024, 6, 3)],
        availability=availability,
    ))


@pytest.mark.unit
def test_user_roundtrip_and_lookups(backend):
    """Test users get increasing ids and can be found by id, email and username."""
    first = make_user(backend, "alice")
    second = make_user(backend, "bob")

    assert first.id > 0
    assert second.id > first.id
    assert first.joined_at.tzinfo is not None
    assert backend.get_user(first.id).username == "alice"
    assert backend.get_user_by_email("bob@example.com").id == second.id
    assert backend.get_user_by_username("alice").email == "alice@example.com"
    assert backend.get_user(9999) is None
    assert backend.get_user_by_email("nobody@example.com") is None


@pytest.mark.unit
def test_duplicate_email_and_username(backend):
    make_user(backend, "alice")

    with pytest.raises(DuplicateRecordError):
        backend.create_user(NewUser(name="A", username="other", email="alice@example.com", password="h"))
    with pytest.raises(DuplicateRecordError):
        backend.create_user(NewUser(name="A", username="alice", email="new@example.com", password="h"))


@pytest.mark.unit
def test_update_user(backend):
    alice = make_user(backend, "alice")
    make_user(backend, "bob")

    updated = backend.update_user(alice.id, {"bio": "Hello", "location": "Dhaka"})
    assert updated.bio == "Hello"
    assert updated.location == "Dhaka"
    assert updated.username == "alice"

    with pytest.raises(DuplicateRecordError):
        backend.update_user(alice.id, {"email": "bob@example.com"})
    # Re-submitting one's own email is fine
    assert backend.update_user(alice.id, {"email": "alice@example.com"}).email == "alice@example.com"
    assert backend.update_user(9999, {"bio": "x"}) is None


@pytest.mark.unit
def test_vendor_profile(backend):
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")

    assert vendor.rating == 0
    assert vendor.review_count == 0
    assert backend.get_vendor(vendor.id).business_name == "Joe's Plumbing"
    assert backend.get_vendor_by_user_id(vendor.user_id).id == vendor.id

    updated = backend.update_vendor(vendor.id, {
        "description": "24/7 service",
        "service_tags": ["drains", "pipes"],
        "business_hours": {"mon": "09:00-18:00"},
    })
    assert updated.description == "24/7 service"
    assert updated.service_tags == ["drains", "pipes"]
    assert updated.business_hours == {"mon": "09:00-18:00"}

    with pytest.raises(DuplicateRecordError):
        backend.create_vendor(NewVendor(user_id=vendor.user_id, business_name="Again", category="X"))


@pytest.mark.unit
def test_search_vendors(backend):
    """Test case-insensitive substring search over business fields and owner name."""
    plumbing = make_vendor(backend, "joe", "Joe's Plumbing", category="Home Repair")
    garden = make_vendor(backend, "gina", "Green Thumbs", category="Gardening",
                         description="Lawn care and hedges", name="Gina Plumber")
    make_vendor(backend, "carl", "Carl's Cakes", category="Bakery")

    assert {v.id for v in backend.search_vendors("plumb")} == {plumbing.id, garden.id}
    assert [v.id for v in backend.search_vendors("HEDGES")] == [garden.id]
    assert [v.id for v in backend.search_vendors("home repair")] == [plumbing.id]
    assert backend.search_vendors("zzz-nothing") == []
    assert len(backend.list_vendors()) == 3


@pytest.mark.unit
@pytest.mark.parametrize("query", [".*", "(", "%", "_", "+"])
def test_search_treats_query_literally(backend, query):
    """Test regex and LIKE metacharacters match only themselves."""
    make_vendor(backend, "joe", "Joe's Plumbing")

    assert backend.search_vendors(query) == []


@pytest.mark.unit
def test_record_vendor_rating(backend):
    """Test the aggregate keeps the rounded mean and count of all ratings."""
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")

    after_first = backend.record_vendor_rating(vendor.id, 5)
    assert (after_first.rating, after_first.review_count) == (5, 1)

    after_second = backend.record_vendor_rating(vendor.id, 4)
    assert (after_second.rating, after_second.review_count) == (5, 2)  # 4.5

    backend.record_vendor_rating(vendor.id, 1)
    stored = backend.get_vendor(vendor.id)
    assert (stored.rating, stored.review_count) == (3, 3)  # 3.33

    assert backend.record_vendor_rating(9999, 5) is None


@pytest.mark.unit
def test_rating_total_survives_profile_updates(backend):
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")
    backend.record_vendor_rating(vendor.id, 2)
    backend.update_vendor(vendor.id, {"description": "New"})

    after = backend.record_vendor_rating(vendor.id, 5)
    assert (after.rating, after.review_count) == (4, 2)  # 3.5


@pytest.mark.unit
def test_services(backend):
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")
    other = make_vendor(backend, "gina", "Green Thumbs", category="Gardening")
    drain = make_service(backend, vendor.id)
    hedge = make_service(backend, other.id, name="Hedge Trim", category="Gardening", availability=False)

    fetched = backend.get_service(drain.id)
    assert fetched.price == "$50"
    assert fetched.time_slots[0].day == "Monday"
    assert fetched.available_dates == [date(2024, 6, 3)]
    assert fetched.created_at.tzinfo is not None

    assert [s.id for s in backend.list_services(vendor_id=vendor.id)] == [drain.id]
    assert [s.id for s in backend.list_services(category="gardening")] == [hedge.id]
    assert [s.id for s in backend.list_services(available=True)] == [drain.id]
    assert len(backend.list_services()) == 2

    updated = backend.update_service(drain.id, {"price": "$60", "available_dates": [date(2024, 7, 1)]})
    assert updated.price == "$60"
    assert updated.available_dates == [date(2024, 7, 1)]

    assert backend.delete_service(drain.id) is True
    assert backend.get_service(drain.id) is None
    assert backend.delete_service(drain.id) is False


@pytest.mark.unit
def test_bookings(backend):
    customer = make_user(backend, "alice")
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")
    service = make_service(backend, vendor.id)

    early = backend.create_booking(NewBooking(user_id=customer.id, vendor_id=vendor.id,
                                              service_id=service.id, date=WHEN))
    late = backend.create_booking(NewBooking(user_id=customer.id, vendor_id=vendor.id,
                                             date=WHEN + timedelta(days=2), notes="Urgent"))

    assert early.status == BookingStatus.PENDING
    assert backend.get_booking(late.id).notes == "Urgent"
    assert backend.get_booking(early.id).date == WHEN
    assert [b.id for b in backend.list_bookings_by_user(customer.id)] == [late.id, early.id]
    assert [b.id for b in backend.list_bookings_by_vendor(vendor.id)] == [late.id, early.id]
    assert backend.list_bookings_by_user(9999) == []

    confirmed = backend.update_booking_status(early.id, BookingStatus.CONFIRMED)
    assert confirmed.status == BookingStatus.CONFIRMED
    assert backend.get_booking(early.id).status == BookingStatus.CONFIRMED
    assert backend.update_booking_status(9999, BookingStatus.CONFIRMED) is None


@pytest.mark.unit
def test_reviews(backend):
    alice = make_user(backend, "alice")
    bob = make_user(backend, "bob")
    vendor = make_vendor(backend, "joe", "Joe's Plumbing")

    first = backend.create_review(NewReview(user_id=alice.id, vendor_id=vendor.id, rating=5, comment="Great"))
    second = backend.create_review(NewReview(user_id=bob.id, vendor_id=vendor.id, rating=3))

    assert backend.get_review_by_user_and_vendor(alice.id, vendor.id).id == first.id
    assert backend.get_review_by_user_and_vendor(alice.id, 9999) is None
    assert [r.id for r in backend.list_reviews_by_vendor(vendor.id)] == [second.id, first.id]

    with pytest.raises(DuplicateRecordError):
        backend.create_review(NewReview(user_id=alice.id, vendor_id=vendor.id, rating=1))


@pytest.mark.unit
def test_concurrent_ratings_memory():
    """Test the in-memory aggregate does not lose concurrent updates."""
    storage = MemoryStorage()
    vendor = make_vendor(storage, "joe", "Joe's Plumbing")

    def rate():
        for _ in range(50):
            storage.record_vendor_rating(vendor.id, 4)

    threads = [threading.Thread(target=rate) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = storage.get_vendor(vendor.id)
    assert stored.review_count == 400
    assert stored.rating == 4


@pytest.mark.unit
def test_concurrent_ratings_sql(tmp_path):
    """Test the single-statement SQL aggregate does not lose concurrent updates."""
    storage = SqlStorage(f"sqlite:///{tmp_path / 'ratings.db'}")
    storage.open()
    try:
        vendor = make_vendor(storage, "joe", "Joe's Plumbing")
        errors = []

        def rate(stars):
            try:
                for _ in range(25):
                    storage.record_vendor_rating(vendor.id, stars)
            except Exception as e:  # surfaced by the assertion below
                errors.append(e)

        threads = [threading.Thread(target=rate, args=(stars,)) for stars in (5, 4, 5, 4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        stored = storage.get_vendor(vendor.id)
        assert stored.review_count == 100
        assert stored.rating_total == 225
        assert stored.rating == 5  # 4.5 rounds half up
    finally:
        storage.close()
