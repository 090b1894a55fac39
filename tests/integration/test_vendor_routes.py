"""Integration tests for vendor discovery and profile routes."""
import pytest


@pytest.mark.integration
def test_list_vendors_includes_user(client, vendor_account, customer_account):
    response = client.get("/api/vendors")

    assert response.status_code == 200
    vendors = response.json()
    assert len(vendors) == 1
    assert vendors[0]["businessName"] == "Joe's Plumbing"
    assert vendors[0]["user"]["username"] == "joe"
    assert "password" not in vendors[0]["user"]


@pytest.mark.integration
def test_search_vendors(client, register):
    """Test search matches business fields and the owner's name, ignoring case."""
    register("joe", role="vendor", vendor={"businessName": "Joe's Plumbing", "category": "Home"})
    register("gina", role="vendor", name="Gina Pipewright",
             vendor={"businessName": "Green Thumbs", "category": "Gardening"})

    names = lambda q: sorted(v["businessName"] for v in client.get("/api/vendors", params={"search": q}).json())

    assert names("PLUMB") == ["Joe's Plumbing"]
    assert names("garden") == ["Green Thumbs"]
    assert names("pipewright") == ["Green Thumbs"]
    assert names("") == ["Green Thumbs", "Joe's Plumbing"]
    assert names("no-such-vendor") == []


@pytest.mark.integration
def test_vendor_detail(client, vendor_account, customer_account):
    """Test the detail view bundles the owner, services and reviews."""
    vendor_id = vendor_account["vendor"]["id"]
    client.post("/api/services", headers=vendor_account["headers"], json={
        "name": "Drain Cleaning", "category": "Plumbing", "description": "Unclog", "price": "$50",
    })
    client.post("/api/reviews", headers=customer_account["headers"], json={
        "vendorId": vendor_id, "rating": 4, "comment": "Quick",
    })

    response = client.get(f"/api/vendors/{vendor_id}")

    assert response.status_code == 200
    detail = response.json()
    assert detail["user"]["username"] == "joe"
    assert [s["name"] for s in detail["services"]] == ["Drain Cleaning"]
    assert detail["reviews"][0]["comment"] == "Quick"
    assert detail["reviews"][0]["user"]["username"] == "alice"
    assert detail["rating"] == 4
    assert detail["reviewCount"] == 1


@pytest.mark.integration
def test_vendor_not_found(client):
    assert client.get("/api/vendors/999").status_code == 404
    assert client.get("/api/vendors/999/services").status_code == 404
    assert client.get("/api/vendors/999/reviews").status_code == 404


@pytest.mark.integration
def test_vendor_services_and_reviews_lists(client, vendor_account, register):
    vendor_id = vendor_account["vendor"]["id"]
    client.post("/api/services", headers=vendor_account["headers"], json={
        "name": "Drain Cleaning", "category": "Plumbing", "description": "Unclog", "price": "$50",
    })
    first = register("alice")
    second = register("bob")
    client.post("/api/reviews", headers=first["headers"], json={"vendorId": vendor_id, "rating": 5})
    client.post("/api/reviews", headers=second["headers"], json={"vendorId": vendor_id, "rating": 2})

    services = client.get(f"/api/vendors/{vendor_id}/services").json()
    reviews = client.get(f"/api/vendors/{vendor_id}/reviews").json()

    assert [s["price"] for s in services] == ["$50"]
    assert [r["user"]["username"] for r in reviews] == ["bob", "alice"]


@pytest.mark.integration
def test_update_my_vendor(client, vendor_account):
    """Test business fields are editable but rating and review count are not."""
    response = client.put("/api/vendors/me", headers=vendor_account["headers"], json={
        "description": "Family business since 1990",
        "businessHours": {"mon": "09:00-17:00"},
        "coverImage": "https://cdn.example.com/cover.png",
        "rating": 5,
        "reviewCount": 100,
    })

    assert response.status_code == 200
    vendor = response.json()
    assert vendor["description"] == "Family business since 1990"
    assert vendor["businessHours"] == {"mon": "09:00-17:00"}
    assert vendor["rating"] == 0
    assert vendor["reviewCount"] == 0


@pytest.mark.integration
def test_update_my_vendor_requires_vendor_role(client, customer_account):
    response = client.put("/api/vendors/me", headers=customer_account["headers"], json={"description": "x"})

    assert response.status_code == 403


@pytest.mark.integration
def test_update_my_vendor_requires_auth(client):
    assert client.put("/api/vendors/me", json={"description": "x"}).status_code == 401
