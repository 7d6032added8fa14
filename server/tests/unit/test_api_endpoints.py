"""Integration tests for API endpoints."""

import pytest


async def _create_resource(client, data):
    response = await client.post("/v1/resources", json=data)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_resource_endpoint(test_client, sample_resource_data):
    """Test the resource registration endpoint."""
    data = await _create_resource(test_client, sample_resource_data)

    assert data["slug"] == sample_resource_data["slug"]
    assert data["fare"] == "100.00"
    assert data["effective_fare"] == "100.00"
    assert data["slots"] == [{"time": "08:00", "capacity": 20}, {"time": "14:00", "capacity": 3}]
    assert "id" in data


@pytest.mark.asyncio
async def test_create_resource_duplicate_slug(test_client, sample_resource_data):
    """Test registering a duplicate slug is a conflict."""
    await _create_resource(test_client, sample_resource_data)

    response = await test_client.post("/v1/resources", json=sample_resource_data)

    assert response.status_code == 409
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["conflicting_resource"]["slug"] == sample_resource_data["slug"]


@pytest.mark.asyncio
async def test_create_resource_invalid_data(test_client, sample_resource_data):
    """Test resource registration with invalid data."""
    invalid_data = {**sample_resource_data, "title": "", "available_days": [7]}

    response = await test_client.post("/v1/resources", json=invalid_data)

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data


@pytest.mark.asyncio
async def test_list_and_get_resources(test_client, sample_resource_data):
    """Test listing, searching and fetching resources."""
    created = await _create_resource(test_client, sample_resource_data)

    response = await test_client.get("/v1/resources", params={"search": "LUXOR"})
    assert response.status_code == 200
    assert response.json()["count"] == 1

    response = await test_client.get("/v1/resources", params={"search": "safari"})
    assert response.json() == {"items": [], "count": 0}

    response = await test_client.get(f"/v1/resources/{created['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == sample_resource_data["title"]


@pytest.mark.asyncio
async def test_get_resource_not_found(test_client):
    """Test fetching an unknown resource."""
    response = await test_client.get("/v1/resources/not-a-real-id")

    assert response.status_code == 404
    assert response.json()["title"] == "Resource Not Found"


@pytest.mark.asyncio
async def test_availability_endpoint(test_client, sample_resource_data):
    """Test month availability uses the storefront key names."""
    created = await _create_resource(test_client, sample_resource_data)

    response = await test_client.get(f"/v1/resources/{created['id']}/availability", params={"month": "2025-10"})

    assert response.status_code == 200
    data = response.json()
    assert data["availableSlotsByDate"]["2025-10-15"] == [
        {"time": "08:00", "remaining": 20},
        {"time": "14:00", "remaining": 3},
    ]
    assert "2025-10-16" not in data["availableSlotsByDate"]
    assert data["fullyBookedDates"] == []


@pytest.mark.asyncio
async def test_availability_invalid_month(test_client, sample_resource_data):
    """Test a malformed month is rejected."""
    created = await _create_resource(test_client, sample_resource_data)

    response = await test_client.get(f"/v1/resources/{created['id']}/availability", params={"month": "2025-13"})

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_MONTH"


@pytest.mark.asyncio
async def test_create_booking_endpoint(test_client, sample_resource_data, sample_booking_data):
    """Test persisting an operator booking and reading it back."""
    created = await _create_resource(test_client, sample_resource_data)

    response = await test_client.post(
        "/v1/bookings",
        json={**sample_booking_data, "resource_id": created["id"]},
        headers={"X-Actor": "desk@example.com"},
    )

    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "CONFIRMED"
    assert booking["total"] == "270.00"
    assert booking["reference"].startswith("EEO-")

    response = await test_client.get(f"/v1/bookings/{booking['reference']}")
    assert response.status_code == 200
    detail = response.json()
    assert detail["customer_name"] == "Amira Hassan"
    assert detail["created_by"] == "desk@example.com"
    assert detail["service_fee"] == "7.50"
    assert detail["hotel_pickup_details"] == "Steigenberger Nile Palace lobby"


@pytest.mark.asyncio
async def test_booking_consumes_availability(test_client, sample_resource_data, sample_booking_data):
    """Test a booking fills the 14:00 slot and the date keeps its morning slot."""
    created = await _create_resource(test_client, sample_resource_data)
    await test_client.post("/v1/bookings", json={**sample_booking_data, "resource_id": created["id"]})

    response = await test_client.get(f"/v1/resources/{created['id']}/availability", params={"month": "2025-10"})

    assert response.json()["availableSlotsByDate"]["2025-10-15"] == [{"time": "08:00", "remaining": 20}]


@pytest.mark.asyncio
async def test_create_booking_price_mismatch(test_client, sample_resource_data, sample_booking_data):
    """Test a tampered total is rejected with the calculated one."""
    created = await _create_resource(test_client, sample_resource_data)
    payload = {
        **sample_booking_data,
        "resource_id": created["id"],
        "pricing": {**sample_booking_data["pricing"], "total": "1.00"},
    }

    response = await test_client.post("/v1/bookings", json=payload)

    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "PRICE_MISMATCH"
    assert data["calculated_total"] == "270.00"
    assert data["retryable"] is False


@pytest.mark.asyncio
async def test_create_booking_invalid_customer(test_client, sample_resource_data, sample_booking_data):
    """Test a booking without customer identity fails validation."""
    created = await _create_resource(test_client, sample_resource_data)
    payload = {
        **sample_booking_data,
        "resource_id": created["id"],
        "customer": {"first_name": "Amira"},
    }

    response = await test_client.post("/v1/bookings", json=payload)

    assert response.status_code == 422
    assert "violations" in response.json()


@pytest.mark.asyncio
async def test_create_booking_unknown_resource(test_client, sample_booking_data):
    """Test booking a resource that does not exist."""
    payload = {**sample_booking_data, "resource_id": "5d6f1f3e-0000-4000-8000-000000000000"}

    response = await test_client.post("/v1/bookings", json=payload)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_booking_not_found(test_client):
    """Test fetching an unknown booking reference."""
    response = await test_client.get("/v1/bookings/EEO-00000000-NOPE00")

    assert response.status_code == 404
    assert response.json()["resource_type"] == "booking"
