"""Row-level access rules for bookings, messages and profiles.

Every service checks these before a read or write reaches the session, the way a
hosted store evaluates its row policies. They are plain predicates over already
loaded rows so the routes and the sync layer share one definition.
"""

from swiftride.models.booking import PENDING


def is_booking_party(booking, principal_id):
    return booking.is_party(principal_id)


def can_view_booking(booking, principal_id, is_rider=False):
    if is_booking_party(booking, principal_id):
        return True
    # Riders browse unclaimed work.
    return bool(is_rider) and booking.status == PENDING and booking.rider_id is None


def can_update_booking(booking, principal_id):
    return is_booking_party(booking, principal_id)


def can_read_messages(booking, principal_id):
    return is_booking_party(booking, principal_id)


def can_send_message(booking, principal_id):
    return is_booking_party(booking, principal_id)


def can_edit_profile(profile_id, principal_id):
    return principal_id is not None and profile_id == principal_id
