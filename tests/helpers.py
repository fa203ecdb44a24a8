from swiftride.models.booking import ACCEPTED, CANCELLED, COMPLETED, ON_THE_WAY, PENDING


def assert_booking_invariants(booking):
    """Status-dependent field rules that must hold after every mutation."""
    if booking.status == PENDING:
        assert booking.rider_id is None
    if booking.status in {ACCEPTED, ON_THE_WAY, COMPLETED}:
        assert booking.rider_id is not None
    assert (booking.completed_at is not None) == (booking.status == COMPLETED)
    assert (booking.cancelled_at is not None) == (booking.status == CANCELLED)
    assert (booking.cancelled_by is not None) == (booking.status == CANCELLED)
