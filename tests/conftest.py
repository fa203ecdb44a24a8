import itertools

import pytest

from swiftride import create_app
from swiftride.extensions import db
from swiftride.services import AuthService, BookingService, RiderService

_emails = itertools.count(1)


def _build_app(tmp_path, **overrides):
    config = {"UPLOAD_DIR": str(tmp_path / "media")}
    config.update(overrides)
    return create_app("testing", config)


@pytest.fixture
def app(tmp_path):
    app = _build_app(tmp_path)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    """App on a file-backed SQLite DB, for tests that touch the store from several threads."""
    app = _build_app(tmp_path, SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'swiftride.db'}")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def make_user():
    def _make(username=None):
        return AuthService.register_user(f"user{next(_emails)}@example.com", "password123", username)

    return _make


@pytest.fixture
def make_rider(make_user):
    def _make(available=True, username=None):
        user = make_user(username)
        RiderService.register_rider(
            user.id,
            {"vehicle_type": "Motorbike", "vehicle_plate": "ka01ab1234", "is_available": available},
        )
        return user

    return _make


@pytest.fixture
def make_booking():
    def _make(owner_id, **kwargs):
        params = {
            "pickup_location": "A",
            "dropoff_location": "B",
            "is_asap": True,
            "booking_type": "trip",
            "name": "Groceries run",
        }
        params.update(kwargs)
        return BookingService.create_booking(owner_id, **params)

    return _make


@pytest.fixture
def api_client(app):
    def _make(rider=False, available=True, username=None):
        client = app.test_client()
        payload = {"email": f"user{next(_emails)}@example.com", "password": "password123"}
        if username:
            payload["username"] = username
        resp = client.post("/api/v1/auth/register", json=payload)
        assert resp.status_code == 201
        client.user_id = resp.get_json()["id"]
        if rider:
            resp = client.post(
                "/api/v1/riders",
                json={"vehicle_type": "Car", "vehicle_plate": "mh12xy9999", "is_available": available},
            )
            assert resp.status_code == 201
        return client

    return _make
