"""Integration tests for API endpoints."""

import pytest


async def create_trip(test_client, data):
    response = await test_client.post("/v1/trip/create", json=data)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_create_trip_endpoint(test_client, sample_trip_data):
    """Test the trip creation endpoint."""
    data = await create_trip(test_client, sample_trip_data)

    assert data["name"] == sample_trip_data["name"]
    assert data["start_date"] == sample_trip_data["start_date"]
    assert data["total_rooms"] == 12
    assert data["available_rooms"] == 0
    assert "id" in data


@pytest.mark.asyncio
async def test_create_trip_invalid_data(test_client, sample_trip_data):
    """Test trip creation with more available than total rooms."""
    invalid_data = dict(sample_trip_data, available_rooms=20)

    response = await test_client.post("/v1/trip/create", json=invalid_data)

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    data = response.json()
    assert data["status"] == 422
    assert data["code"] == "validation_error"
    assert data["violations"]


@pytest.mark.asyncio
async def test_get_trip_not_found(test_client):
    response = await test_client.post(
        "/v1/trip/get", json={"trip_id": "4f1c2a1e-7f40-4c2e-9a53-0b5d3c3a9e11"}
    )

    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "trip_not_found"
    assert data["retryable"] is False
    assert data["instance"] == "/v1/trip/get"


@pytest.mark.asyncio
async def test_get_trip_malformed_id(test_client):
    response = await test_client.post("/v1/trip/get", json={"trip_id": "not-a-uuid"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_trips(test_client, sample_trip_data):
    await create_trip(test_client, sample_trip_data)
    await create_trip(test_client, dict(sample_trip_data, name="Earlier Trip", start_date="2030-02-01"))

    response = await test_client.post("/v1/trip/list", json={})

    assert response.status_code == 200
    names = [item["name"] for item in response.json()["items"]]
    assert names == ["Earlier Trip", sample_trip_data["name"]]


@pytest.mark.asyncio
async def test_waitlist_flow(test_client, sample_trip_data):
    """Join, get the turn when a room frees, then book it."""
    trip = await create_trip(test_client, sample_trip_data)
    trip_id = trip["id"]

    join = await test_client.post(
        "/v1/waitlist/join", json={"trip_id": trip_id, "user_id": "ana", "rooms_requested": 1}
    )
    assert join.status_code == 200
    assert join.json()["entry"]["position"] == 1
    assert join.json()["entry"]["status"] == "WAITING"
    assert join.json()["message"] == "You are number 1 in the waiting list."

    await test_client.post("/v1/waitlist/join", json={"trip_id": trip_id, "user_id": "ben"})

    adjust = await test_client.post(
        "/v1/trip/adjust-rooms",
        json={"trip_id": trip_id, "delta": 1, "reason": "Hotel released a room", "actor": "ops@example.com"},
    )
    assert adjust.status_code == 200
    adjusted = adjust.json()
    assert adjusted["trip"]["available_rooms"] == 1
    assert adjusted["adjustment"]["delta"] == 1
    assert adjusted["turn_granted"]["user_id"] == "ana"
    assert adjusted["turn_granted"]["booking_window_hours"] == 48

    status = await test_client.post("/v1/waitlist/status", json={"trip_id": trip_id, "user_id": "ana"})
    assert status.status_code == 200
    assert status.json()["is_notified"] is True
    assert status.json()["booking_window_text"] == "2 days"

    priority = await test_client.post("/v1/waitlist/priority", json={"trip_id": trip_id, "user_id": "ben"})
    assert priority.json()["allowed"] is False
    assert priority.json()["reason"].startswith("Someone from the waiting list currently has priority")

    blocked = await test_client.post(
        "/v1/booking/create", json={"trip_id": trip_id, "user_id": "ben", "number_of_rooms": 1}
    )
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "priority_blocked"
    assert blocked.json()["retryable"] is True

    booked = await test_client.post(
        "/v1/booking/create", json={"trip_id": trip_id, "user_id": "ana", "number_of_rooms": 1}
    )
    assert booked.status_code == 200
    assert booked.json()["status"] == "CONFIRMED"

    ben_status = await test_client.post("/v1/waitlist/status", json={"trip_id": trip_id, "user_id": "ben"})
    assert ben_status.json()["position"] == 1
    assert ben_status.json()["estimated_wait"].startswith("You're next in line!")


@pytest.mark.asyncio
async def test_join_waitlist_validation(test_client, sample_trip_data):
    trip = await create_trip(test_client, sample_trip_data)

    response = await test_client.post(
        "/v1/waitlist/join", json={"trip_id": trip["id"], "user_id": "ana", "rooms_requested": 11}
    )

    assert response.status_code == 422
    assert response.json()["violations"][0]["path"] == "rooms_requested"


@pytest.mark.asyncio
async def test_join_waitlist_conflicts(test_client, sample_trip_data):
    open_trip = await create_trip(test_client, dict(sample_trip_data, available_rooms=5))
    sold_out = await create_trip(test_client, sample_trip_data)

    not_needed = await test_client.post(
        "/v1/waitlist/join", json={"trip_id": open_trip["id"], "user_id": "ana"}
    )
    assert not_needed.status_code == 409
    assert not_needed.json()["code"] == "waitlist_not_needed"

    await test_client.post("/v1/waitlist/join", json={"trip_id": sold_out["id"], "user_id": "ana"})
    duplicate = await test_client.post(
        "/v1/waitlist/join", json={"trip_id": sold_out["id"], "user_id": "ana"}
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "already_queued"
    assert duplicate.json()["position"] == 1


@pytest.mark.asyncio
async def test_leave_and_list_my_waitlists(test_client, sample_trip_data):
    trip = await create_trip(test_client, sample_trip_data)
    await test_client.post("/v1/waitlist/join", json={"trip_id": trip["id"], "user_id": "ana"})

    mine = await test_client.post("/v1/waitlist/mine", json={"user_id": "ana"})
    assert [item["trip_id"] for item in mine.json()["items"]] == [trip["id"]]

    leave = await test_client.post("/v1/waitlist/leave", json={"trip_id": trip["id"], "user_id": "ana"})
    assert leave.status_code == 200
    assert leave.json()["entry"]["status"] == "CANCELLED"
    assert leave.json()["turn_granted"] is None

    again = await test_client.post("/v1/waitlist/leave", json={"trip_id": trip["id"], "user_id": "ana"})
    assert again.status_code == 404
    assert again.json()["code"] == "entry_not_found"

    mine = await test_client.post("/v1/waitlist/mine", json={"user_id": "ana"})
    assert mine.json()["items"] == []


@pytest.mark.asyncio
async def test_booking_cancel_grants_turn(test_client, sample_trip_data):
    trip = await create_trip(test_client, dict(sample_trip_data, total_rooms=1, available_rooms=1))
    booking = (await test_client.post(
        "/v1/booking/create", json={"trip_id": trip["id"], "user_id": "ana", "number_of_rooms": 1}
    )).json()
    await test_client.post("/v1/waitlist/join", json={"trip_id": trip["id"], "user_id": "ben"})

    cancel = await test_client.post(
        "/v1/booking/cancel", json={"booking_id": booking["id"], "user_id": "ana", "reason": "Sick"}
    )

    assert cancel.status_code == 200
    assert cancel.json()["booking"]["status"] == "CANCELLED"
    assert cancel.json()["turn_granted"]["user_id"] == "ben"

    fetched = await test_client.post("/v1/booking/get", json={"booking_id": booking["id"]})
    assert fetched.json()["cancellation_reason"] == "Sick"

    listed = await test_client.post("/v1/booking/list", json={"user_id": "ana"})
    assert [item["id"] for item in listed.json()["items"]] == [booking["id"]]


@pytest.mark.asyncio
async def test_booking_insufficient_rooms(test_client, sample_trip_data):
    trip = await create_trip(test_client, dict(sample_trip_data, available_rooms=1))

    response = await test_client.post(
        "/v1/booking/create", json={"trip_id": trip["id"], "user_id": "ana", "number_of_rooms": 2}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Only 1 rooms are available"


@pytest.mark.asyncio
async def test_admin_endpoints(test_client, sample_trip_data, clock):
    trip = await create_trip(test_client, sample_trip_data)
    for user_id in ("ana", "ben"):
        await test_client.post("/v1/waitlist/join", json={"trip_id": trip["id"], "user_id": user_id})

    overview = await test_client.post("/v1/admin/waitlist/overview")
    assert overview.status_code == 200
    assert overview.json()["items"][0]["active_entries"] == 2
    assert overview.json()["items"][0]["turn_holder_user_id"] is None

    details = await test_client.post("/v1/admin/waitlist/details", json={"trip_id": trip["id"]})
    assert [e["user_id"] for e in details.json()["entries"]] == ["ana", "ben"]

    no_rooms = await test_client.post("/v1/admin/waitlist/notify-next", json={"trip_id": trip["id"]})
    assert no_rooms.status_code == 409
    assert no_rooms.json()["code"] == "no_rooms_available"

    adjust = await test_client.post(
        "/v1/trip/adjust-rooms",
        json={"trip_id": trip["id"], "delta": 1, "reason": "Extra room", "actor": "ops"},
    )
    holder_entry = adjust.json()["turn_granted"]["entry_id"]

    expire = await test_client.post("/v1/admin/waitlist/expire", json={"entry_id": holder_entry})
    assert expire.status_code == 200
    assert expire.json()["entry"]["status"] == "EXPIRED"
    assert expire.json()["turn_granted"]["user_id"] == "ben"
    assert expire.json()["turn_granted"]["position"] == 1


@pytest.mark.asyncio
async def test_adjust_rooms_capacity_conflict(test_client, sample_trip_data):
    trip = await create_trip(test_client, sample_trip_data)

    response = await test_client.post(
        "/v1/trip/adjust-rooms",
        json={"trip_id": trip["id"], "delta": -1, "reason": "Withdraw", "actor": "ops"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "capacity_conflict"


@pytest.mark.asyncio
async def test_request_id_header(test_client):
    response = await test_client.post("/v1/trip/list", json={}, headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
