import threading

import pytest

from swiftride.errors import BookingUnavailable, NotAuthorized, NotFound
from swiftride.extensions import db
from swiftride.models import Booking
from swiftride.models.booking import ACCEPTED
from swiftride.services import AcceptanceService, AuthService, BookingService, RiderService
from tests.helpers import assert_booking_invariants


@pytest.mark.usefixtures("ctx")
class TestAcceptBooking:
    def test_claims_pending_booking(self, make_user, make_rider, make_booking):
        owner = make_user()
        rider = make_rider()
        booking = make_booking(owner.id)

        accepted = AcceptanceService.accept_booking(booking.id, rider.id)

        assert accepted.status == ACCEPTED
        assert accepted.rider_id == rider.id
        assert accepted.updated_at is not None
        assert_booking_invariants(accepted)

    def test_second_rider_gets_unavailable(self, make_user, make_rider, make_booking):
        owner = make_user()
        first, second = make_rider(), make_rider()
        booking = make_booking(owner.id)

        AcceptanceService.accept_booking(booking.id, first.id)
        with pytest.raises(BookingUnavailable):
            AcceptanceService.accept_booking(booking.id, second.id)

        row = db.session.get(Booking, booking.id)
        db.session.refresh(row)
        assert row.rider_id == first.id

    def test_same_rider_cannot_claim_twice(self, make_user, make_rider, make_booking):
        owner = make_user()
        rider = make_rider()
        booking = make_booking(owner.id)

        AcceptanceService.accept_booking(booking.id, rider.id)
        with pytest.raises(BookingUnavailable):
            AcceptanceService.accept_booking(booking.id, rider.id)

    def test_requires_rider_profile(self, make_user, make_booking):
        owner = make_user()
        customer = make_user()
        booking = make_booking(owner.id)

        with pytest.raises(NotAuthorized):
            AcceptanceService.accept_booking(booking.id, customer.id)
        assert db.session.get(Booking, booking.id).rider_id is None

    def test_requires_available_rider(self, make_user, make_rider, make_booking):
        owner = make_user()
        rider = make_rider(available=False)
        booking = make_booking(owner.id)

        with pytest.raises(NotAuthorized):
            AcceptanceService.accept_booking(booking.id, rider.id)

        RiderService.set_availability(rider.id, True)
        assert AcceptanceService.accept_booking(booking.id, rider.id).rider_id == rider.id

    def test_owner_cannot_accept_own_booking(self, make_rider, make_booking):
        rider = make_rider()
        booking = make_booking(rider.id)

        with pytest.raises(NotAuthorized):
            AcceptanceService.accept_booking(booking.id, rider.id)

    def test_unknown_booking(self, make_rider):
        rider = make_rider()
        with pytest.raises(NotFound):
            AcceptanceService.accept_booking(424242, rider.id)


def test_concurrent_accepts_have_exactly_one_winner(file_app):
    with file_app.app_context():
        owner = AuthService.register_user("owner@example.com", "password123")
        riders = []
        for index in range(4):
            user = AuthService.register_user(f"rider{index}@example.com", "password123")
            RiderService.register_rider(user.id, {"vehicle_type": "Bike", "vehicle_plate": f"R{index}", "is_available": True})
            riders.append(user.id)
        booking_id = BookingService.create_booking(owner.id, "A", "B", is_asap=True, name="Contended").id

    barrier = threading.Barrier(len(riders))
    outcomes = {}

    def attempt(rider_id):
        with file_app.app_context():
            try:
                barrier.wait()
                booking = AcceptanceService.accept_booking(booking_id, rider_id)
                outcomes[rider_id] = ("won", booking.rider_id)
            except BookingUnavailable:
                outcomes[rider_id] = ("lost", None)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt, args=(rider_id,)) for rider_id in riders]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    winners = [rider_id for rider_id, (result, _) in outcomes.items() if result == "won"]
    assert len(outcomes) == len(riders)
    assert len(winners) == 1
    assert outcomes[winners[0]] == ("won", winners[0])

    with file_app.app_context():
        row = db.session.get(Booking, booking_id)
        assert row.status == ACCEPTED
        assert row.rider_id == winners[0]
