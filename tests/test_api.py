import io

import pytest
from PIL import Image


def _png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (2, 2), color=(0, 120, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def _create_booking(client, **overrides):
    payload = {
        "pickup_location": "Station Road",
        "dropoff_location": "City Mall",
        "is_asap": True,
        "booking_type": "trip",
        "name": "Mall trip",
    }
    payload.update(overrides)
    resp = client.post("/api/v1/bookings", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


@pytest.fixture
def accepted_booking(api_client):
    customer = api_client(username="customer")
    rider = api_client(rider=True, username="rider")
    booking = _create_booking(customer)
    resp = rider.post(f"/api/v1/bookings/{booking['id']}/accept")
    assert resp.status_code == 200
    return booking["id"], customer, rider


def test_register_login_and_profile(app):
    client = app.test_client()
    resp = client.post("/api/v1/auth/register", json={"email": "Ana@Example.com", "password": "password123"})
    assert resp.status_code == 201
    assert resp.get_json()["email"] == "ana@example.com"

    me = client.get("/api/v1/profiles/me").get_json()
    assert me["username"] == "ana"
    assert me["is_rider"] is False

    resp = client.put("/api/v1/profiles/me", json={"username": "Ana R"})
    assert resp.get_json()["username"] == "Ana R"

    client.post("/api/v1/auth/logout")
    assert client.get("/api/v1/profiles/me").status_code == 401

    bad = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "wrong-password"})
    assert bad.status_code == 401
    ok = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "password123"})
    assert ok.status_code == 200


def test_duplicate_registration_conflicts(app):
    client = app.test_client()
    payload = {"email": "dup@example.com", "password": "password123"}
    assert client.post("/api/v1/auth/register", json=payload).status_code == 201
    assert app.test_client().post("/api/v1/auth/register", json=payload).status_code == 409


def test_rider_opt_in_and_availability(api_client):
    client = api_client()
    resp = client.post("/api/v1/riders", json={"vehicle_type": "Scooter", "vehicle_plate": "ka05 mn 1"})
    assert resp.status_code == 201
    assert resp.get_json()["vehicle_plate"] == "KA05 MN 1"
    assert client.post("/api/v1/riders", json={"vehicle_type": "Car", "vehicle_plate": "X"}).status_code == 409

    assert client.get("/api/v1/profiles/me").get_json()["is_rider"] is True
    resp = client.post("/api/v1/riders/me/availability", json={"is_available": "yes"})
    assert resp.get_json() == {"is_available": True}
    resp = client.patch("/api/v1/riders/me", json={"current_location": "Koramangala"})
    assert resp.get_json()["current_location"] == "Koramangala"


def test_full_lifecycle_over_http(api_client):
    customer = api_client()
    rider = api_client(rider=True)
    booking = _create_booking(customer)
    assert booking["status"] == "pending"

    listed = rider.get("/api/v1/bookings/available").get_json()
    assert [item["id"] for item in listed] == [booking["id"]]
    assert listed[0]["user"]["username"] == "Mall trip"

    accepted = rider.post(f"/api/v1/bookings/{booking['id']}/accept").get_json()
    assert accepted["status"] == "accepted"
    assert accepted["rider_id"] == rider.user_id
    assert [item["id"] for item in rider.get("/api/v1/bookings/active").get_json()] == [booking["id"]]

    resp = rider.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "on_the_way"})
    assert resp.get_json()["status"] == "on_the_way"
    resp = rider.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "completed"})
    body = resp.get_json()
    assert body["status"] == "completed"
    assert body["completed_at"] is not None

    assert rider.get("/api/v1/riders/me").get_json()["total_trips"] == 1
    mine = customer.get("/api/v1/bookings/me?status=completed").get_json()
    assert [item["id"] for item in mine] == [booking["id"]]


def test_second_accept_is_a_conflict(accepted_booking, api_client):
    booking_id, _, _ = accepted_booking
    late_rider = api_client(rider=True)

    resp = late_rider.post(f"/api/v1/bookings/{booking_id}/accept")

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "booking_unavailable"


def test_unrelated_user_cannot_cancel(accepted_booking, api_client):
    booking_id, customer, _ = accepted_booking
    stranger = api_client()

    resp = stranger.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "spite"})

    assert resp.status_code == 403
    assert resp.get_json()["code"] == "not_authorized"
    assert customer.get(f"/api/v1/bookings/{booking_id}").get_json()["status"] == "accepted"


def test_rider_cancels_accepted_booking(accepted_booking):
    booking_id, customer, rider = accepted_booking

    body = rider.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "flat tyre"}).get_json()

    assert body["status"] == "cancelled"
    assert body["cancelled_by"] == rider.user_id
    assert body["cancellation_reason"] == "flat tyre"


def test_skipping_a_step_is_an_invalid_transition(accepted_booking):
    booking_id, _, rider = accepted_booking

    resp = rider.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "completed"})

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "invalid_transition"


def test_booking_validation_errors(api_client):
    client = api_client()

    resp = client.post("/api/v1/bookings", json={"pickup_location": "A", "name": "x", "is_asap": True})

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_rider_only_endpoints_reject_customers(api_client):
    customer = api_client()
    booking = _create_booking(customer)

    for resp in (
        customer.get("/api/v1/bookings/available"),
        customer.get("/api/v1/bookings/active"),
        customer.post(f"/api/v1/bookings/{booking['id']}/accept"),
    ):
        assert resp.status_code == 403


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/v1/bookings/me"),
        ("post", "/api/v1/bookings"),
        ("get", "/api/v1/bookings/1/messages"),
        ("post", "/api/v1/bookings/1/accept"),
    ],
)
def test_anonymous_requests_are_rejected(app, method, path):
    resp = getattr(app.test_client(), method)(path)
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "unauthorized"


def test_chat_over_http(accepted_booking, api_client):
    booking_id, customer, rider = accepted_booking

    sent = customer.post(f"/api/v1/bookings/{booking_id}/messages", json={"content": "Gate 2 please"})
    assert sent.status_code == 201
    assert sent.get_json()["kind"] == "text"
    rider.post(f"/api/v1/bookings/{booking_id}/messages", json={"content": "Sure"})

    thread = rider.get(f"/api/v1/bookings/{booking_id}/messages").get_json()
    assert [m["content"] for m in thread] == ["Gate 2 please", "Sure"]
    assert thread[0]["sender"]["username"] == "customer"

    stranger = api_client()
    assert stranger.get(f"/api/v1/bookings/{booking_id}/messages").status_code == 403
    empty = customer.post(f"/api/v1/bookings/{booking_id}/messages", json={"content": " "})
    assert empty.status_code == 400


def test_image_attachment_upload_and_download(accepted_booking):
    booking_id, customer, rider = accepted_booking

    resp = rider.post(
        f"/api/v1/bookings/{booking_id}/attachments",
        data={"kind": "image", "attachment": (io.BytesIO(_png_bytes()), "proof.png")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["kind"] == "image"
    assert body["url"].startswith(f"/media/bookings/{booking_id}/")
    assert customer.get(body["url"]).status_code == 200


def test_attachment_requires_a_file(accepted_booking):
    booking_id, customer, _ = accepted_booking

    resp = customer.post(
        f"/api/v1/bookings/{booking_id}/attachments",
        data={"kind": "file"},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 400


def test_string_false_asap_requires_schedule(api_client):
    client = api_client()

    resp = client.post(
        "/api/v1/bookings",
        json={"pickup_location": "A", "dropoff_location": "B", "name": "Later", "is_asap": "false"},
    )

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_attachments_are_private_to_the_booking(accepted_booking, api_client):
    booking_id, customer, rider = accepted_booking
    url = rider.post(
        f"/api/v1/bookings/{booking_id}/attachments",
        data={"kind": "image", "attachment": (io.BytesIO(_png_bytes()), "proof.png")},
        content_type="multipart/form-data",
    ).get_json()["url"]
    stranger = api_client()

    assert stranger.get(url).status_code == 403
    assert customer.get(url).status_code == 200
    assert customer.get("/media/elsewhere/secret.txt").status_code == 404
    assert customer.get(f"/media/bookings/{booking_id + 1000}/x.png").status_code == 404


def test_completed_bookings_carry_customer(accepted_booking, api_client):
    booking_id, customer, rider = accepted_booking
    rider.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "on_the_way"})
    rider.patch(f"/api/v1/bookings/{booking_id}/status", json={"status": "completed"})
    _create_booking(customer, name="Still open")

    for client in (customer, rider):
        items = client.get("/api/v1/bookings/completed").get_json()
        assert [item["id"] for item in items] == [booking_id]
        assert items[0]["user"]["id"] == customer.user_id
        assert items[0]["user"]["username"] == "Mall trip"
    assert api_client().get("/api/v1/bookings/completed").get_json() == []
