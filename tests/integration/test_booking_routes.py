"""Integration tests for the booking workflow."""
import pytest

from vendorhive.api.app import create_app
from vendorhive.storage.memory import MemoryStorage


@pytest.fixture
def service_id(client, vendor_account):
    response = client.post("/api/services", headers=vendor_account["headers"], json={
        "name": "Drain Cleaning", "category": "Plumbing", "description": "Unclog", "price": "$50",
    })
    return response.json()["id"]


def book(client, account, vendor_id, **fields):
    payload = {"vendorId": vendor_id, "date": "2024-06-01T10:00:00Z", **fields}
    return client.post("/api/bookings", headers=account["headers"], json=payload)


@pytest.mark.integration
def test_create_booking(client, vendor_account, customer_account, service_id):
    """Test a customer books a vendor's service; the booking starts pending."""
    response = book(client, customer_account, vendor_account["vendor"]["id"],
                    serviceId=service_id, notes="Kitchen sink")

    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "pending"
    assert booking["userId"] == customer_account["user"]["id"]
    assert booking["serviceId"] == service_id
    assert booking["notes"] == "Kitchen sink"
    assert booking["date"].startswith("2024-06-01T10:00:00")


@pytest.mark.integration
def test_create_booking_errors(client, vendor_account, customer_account, register):
    vendor_id = vendor_account["vendor"]["id"]

    assert book(client, customer_account, 999).status_code == 404
    assert book(client, customer_account, vendor_id, userId=999).status_code == 403
    assert book(client, vendor_account, vendor_id).status_code == 403
    assert book(client, customer_account, vendor_id, date="not-a-date").status_code == 400
    assert client.post("/api/bookings", json={"vendorId": vendor_id, "date": "2024-06-01T10:00:00Z"}).status_code == 401

    rival = register("rex", role="vendor")
    rival_service = client.post("/api/services", headers=rival["headers"], json={
        "name": "Pipe Fix", "category": "Plumbing", "description": "", "price": "$80",
    }).json()
    assert book(client, customer_account, vendor_id, serviceId=rival_service["id"]).status_code == 400
    assert book(client, customer_account, vendor_id, serviceId=12345).status_code == 400


@pytest.mark.integration
def test_booking_lists(client, vendor_account, customer_account):
    """Test user and vendor booking lists are scoped and newest first."""
    vendor_id = vendor_account["vendor"]["id"]
    early = book(client, customer_account, vendor_id, date="2024-06-01T10:00:00Z").json()
    late = book(client, customer_account, vendor_id, date="2024-07-01T10:00:00Z").json()

    mine = client.get("/api/bookings/user", headers=customer_account["headers"]).json()
    theirs = client.get("/api/bookings/vendor", headers=vendor_account["headers"]).json()

    assert [b["id"] for b in mine] == [late["id"], early["id"]]
    assert [b["id"] for b in theirs] == [late["id"], early["id"]]
    assert client.get("/api/bookings/user", headers=vendor_account["headers"]).json() == []
    assert client.get("/api/bookings/vendor", headers=customer_account["headers"]).status_code == 403


@pytest.mark.integration
@pytest.mark.parametrize("status", ["confirmed", "completed", "cancelled", "pending"])
def test_vendor_sets_status(client, vendor_account, customer_account, status):
    """Test the stored status is exactly the submitted value."""
    booking = book(client, customer_account, vendor_account["vendor"]["id"]).json()

    response = client.put(f"/api/bookings/{booking['id']}/status",
                          headers=vendor_account["headers"], json={"status": status})

    assert response.status_code == 200
    assert response.json()["status"] == status
    stored = client.get("/api/bookings/user", headers=customer_account["headers"]).json()[0]
    assert stored["status"] == status


@pytest.mark.integration
@pytest.mark.parametrize("status", ["done", "CONFIRMED", "", None])
def test_invalid_status_rejected(client, vendor_account, customer_account, status):
    booking = book(client, customer_account, vendor_account["vendor"]["id"]).json()

    response = client.put(f"/api/bookings/{booking['id']}/status",
                          headers=vendor_account["headers"], json={"status": status})

    assert response.status_code == 400


@pytest.mark.integration
def test_status_permissions(client, vendor_account, customer_account, register):
    """Test the customer may only cancel and outsiders may do nothing."""
    booking = book(client, customer_account, vendor_account["vendor"]["id"]).json()
    url = f"/api/bookings/{booking['id']}/status"
    outsider = register("mallory")

    assert client.put(url, headers=customer_account["headers"], json={"status": "confirmed"}).status_code == 403
    assert client.put(url, headers=outsider["headers"], json={"status": "cancelled"}).status_code == 403
    assert client.put(url, headers=customer_account["headers"], json={"status": "cancelled"}).status_code == 200
    assert client.put("/api/bookings/999/status", headers=vendor_account["headers"],
                      json={"status": "confirmed"}).status_code == 404


@pytest.mark.integration
def test_strict_transitions_return_409(settings, register_on):
    """Test strict mode rejects a pending booking jumping straight to completed."""
    strict = settings.model_copy(update={"strict_booking_transitions": True})
    client, register = register_on(create_app(settings=strict, storage=MemoryStorage()))
    vendor = register(client, "joe", role="vendor")
    customer = register(client, "alice")
    vendor_id = client.get("/api/users/me", headers=vendor["headers"]).json()["vendorProfile"]["id"]
    booking = book(client, customer, vendor_id).json()
    url = f"/api/bookings/{booking['id']}/status"

    response = client.put(url, headers=vendor["headers"], json={"status": "completed"})
    assert response.status_code == 409
    assert response.json()["details"] == {"current": "pending", "requested": "completed"}

    assert client.put(url, headers=vendor["headers"], json={"status": "confirmed"}).status_code == 200
    assert client.put(url, headers=vendor["headers"], json={"status": "completed"}).status_code == 200


@pytest.fixture
def register_on():
    """Open a TestClient on a custom app; returns (client, register)."""
    from fastapi.testclient import TestClient

    clients = []

    def _register(client, username, role="user"):
        response = client.post("/api/auth/register", json={
            "name": username.capitalize(), "username": username,
            "email": f"{username}@example.com", "password": "secret123", "role": role,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body

    def _open(app):
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client, _register

    yield _open

    for client in clients:
        client.__exit__(None, None, None)
