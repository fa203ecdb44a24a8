from flask import current_app
from sqlalchemy import update

from swiftride.errors import BookingUnavailable, NotAuthorized, NotFound
from swiftride.extensions import db
from swiftride.models import Booking
from swiftride.models.base import utcnow
from swiftride.models.booking import ACCEPTED, PENDING
from swiftride.services.booking_service import publish_booking
from swiftride.services.rider_service import RiderService
from swiftride.services.store import store_write


class AcceptanceService:
    """Single-claim protocol for pending bookings.

    The claim is one UPDATE whose WHERE clause carries the whole precondition
    (still pending, still unassigned, not the caller's own booking). The database
    evaluates it atomically with the write, so of any number of concurrent riders
    exactly one matches the row; everyone else matches zero rows and gets
    :class:`BookingUnavailable`.
    """

    @staticmethod
    def accept_booking(booking_id, rider_id):
        rider = RiderService.get_rider_profile(rider_id)
        if not rider or not rider.is_available:
            raise NotAuthorized("Only available riders can accept bookings.")

        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == PENDING,
                Booking.rider_id.is_(None),
                Booking.user_id != rider_id,
            )
            .values(status=ACCEPTED, rider_id=rider_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        with store_write(f"accepting booking {booking_id}"):
            matched = db.session.execute(stmt).rowcount

            if matched != 1:
                db.session.rollback()
                # The write already failed; these reads only pick the error to report.
                booking = db.session.get(Booking, booking_id)
                if booking is None:
                    raise NotFound("Booking not found.")
                if booking.user_id == rider_id:
                    raise NotAuthorized("You cannot accept your own booking.")
                current_app.logger.info("Rider %s lost the claim on booking %s", rider_id, booking_id)
                raise BookingUnavailable("This booking has already been taken or is no longer available.")

            db.session.commit()
            booking = db.session.get(Booking, booking_id)
            db.session.refresh(booking)
        current_app.logger.info("Booking %s accepted by rider %s", booking_id, rider_id)
        return publish_booking(booking)
