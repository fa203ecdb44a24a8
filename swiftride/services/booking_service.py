from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import or_, update

from swiftride.errors import InvalidTransition, NotAuthorized, NotFound, ValidationError
from swiftride.extensions import change_feed, db
from swiftride.models import Booking, RiderProfile
from swiftride.models.base import utcnow
from swiftride.models.booking import (
    ACCEPTED,
    BOOKING_STATUSES,
    BOOKING_TYPES,
    CANCELLED,
    COMPLETED,
    ON_THE_WAY,
    PENDING,
)
from swiftride.policies import can_update_booking, can_view_booking
from swiftride.services.rider_service import RiderService
from swiftride.services.store import store_write
from swiftride.validation import parse_bool

BOOKINGS_RELATION = "bookings"

BOOKING_TRANSITIONS = {
    PENDING: {ACCEPTED, CANCELLED},
    ACCEPTED: {ON_THE_WAY, CANCELLED},
    ON_THE_WAY: {COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# Steps the assigned rider drives; acceptance goes through AcceptanceService.
ADVANCE_STEPS = {
    ACCEPTED: ON_THE_WAY,
    ON_THE_WAY: COMPLETED,
}

# Who may cancel from each cancellable status.
CANCEL_ACTORS = {
    PENDING: {"owner"},
    ACCEPTED: {"owner", "rider"},
}

ACTIVE_RIDER_STATUSES = (ACCEPTED, ON_THE_WAY)


def publish_booking(booking):
    """Announce a committed booking row to ``bookings`` subscribers (by ``id``, ``user_id`` or ``rider_id``)."""
    change_feed.publish(BOOKINGS_RELATION, booking.to_dict())
    return booking


def can_transition(current, target):
    return target in BOOKING_TRANSITIONS.get(current, set())


def normalize_status(value):
    status = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if status not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown booking status: {value!r}.")
    return status


def parse_scheduled_time(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError("Scheduled time must be an ISO-8601 timestamp.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class BookingService:
    @staticmethod
    def _load(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found.")
        return booking

    @staticmethod
    def _conditioned_write(booking_id, expected_status, values, *conditions):
        """UPDATE the row only while it still has ``expected_status``; returns rows matched."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected_status, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def _refetch(booking_id):
        booking = db.session.get(Booking, booking_id)
        db.session.refresh(booking)
        return booking

    @staticmethod
    def create_booking(
        owner_id,
        pickup_location,
        dropoff_location,
        scheduled_time=None,
        is_asap=False,
        booking_type="trip",
        name=None,
        notes=None,
    ):
        pickup = (pickup_location or "").strip()
        dropoff = (dropoff_location or "").strip()
        display_name = (name or "").strip()
        if not pickup or not dropoff:
            raise ValidationError("Pickup and dropoff locations are required.")
        if not display_name:
            raise ValidationError("A booking name is required.")

        category = (booking_type or "").strip().lower()
        if category not in BOOKING_TYPES:
            raise ValidationError("Booking type must be 'trip' or 'task'.")

        is_asap = parse_bool(is_asap, "is_asap")
        scheduled = None
        if not is_asap:
            scheduled = parse_scheduled_time(scheduled_time)
            if scheduled is None:
                raise ValidationError("Scheduled time is required unless the booking is ASAP.")

        booking = Booking(
            user_id=owner_id,
            pickup_location=pickup,
            dropoff_location=dropoff,
            scheduled_time=scheduled,
            is_asap=is_asap,
            status=PENDING,
            booking_type=category,
            name=display_name,
            notes=(notes or "").strip() or None,
        )
        with store_write("creating a booking"):
            db.session.add(booking)
            db.session.commit()
        current_app.logger.info("Booking %s created by user %s", booking.id, owner_id)
        return publish_booking(booking)

    @staticmethod
    def get_booking(booking_id, principal_id):
        booking = BookingService._load(booking_id)
        if booking.is_party(principal_id):
            return booking
        if not can_view_booking(booking, principal_id, is_rider=RiderService.is_rider(principal_id)):
            raise NotAuthorized("You do not have access to this booking.")
        return booking

    @staticmethod
    def list_bookings_for_principal(principal_id, status=None):
        query = Booking.query.filter(or_(Booking.user_id == principal_id, Booking.rider_id == principal_id))
        if status:
            query = query.filter(Booking.status == normalize_status(status))
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    @staticmethod
    def list_available_bookings(rider_id):
        if not RiderService.is_rider(rider_id):
            raise NotAuthorized("Only riders can browse available bookings.")
        return (
            Booking.query.filter(Booking.status == PENDING, Booking.rider_id.is_(None))
            .filter(Booking.user_id != rider_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def list_active_bookings(rider_id):
        if not RiderService.is_rider(rider_id):
            raise NotAuthorized("Only riders have active bookings.")
        return (
            Booking.query.filter(Booking.rider_id == rider_id, Booking.status.in_(ACTIVE_RIDER_STATUSES))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def list_completed_bookings(principal_id):
        return BookingService.list_bookings_for_principal(principal_id, status=COMPLETED)

    @staticmethod
    def advance_status(booking_id, actor_id, target_status):
        booking = BookingService._load(booking_id)
        if booking.rider_id is None or booking.rider_id != actor_id:
            raise NotAuthorized("Only the assigned rider can update this booking's progress.")

        target = normalize_status(target_status)
        current = booking.status
        if ADVANCE_STEPS.get(current) != target:
            raise InvalidTransition(f"Invalid status transition from {current} to {target}.")

        now = utcnow()
        values = {"status": target, "updated_at": now}
        if target == COMPLETED:
            values["completed_at"] = now

        with store_write(f"advancing booking {booking_id}"):
            matched = BookingService._conditioned_write(booking_id, current, values, Booking.rider_id == actor_id)
            if matched != 1:
                db.session.rollback()
                raise InvalidTransition("Booking changed before the update was applied. Refresh and try again.")

            if target == COMPLETED:
                db.session.execute(
                    update(RiderProfile)
                    .where(RiderProfile.user_id == actor_id)
                    .values(total_trips=RiderProfile.total_trips + 1)
                    .execution_options(synchronize_session=False)
                )
            db.session.commit()
            booking = BookingService._refetch(booking_id)
        current_app.logger.info("Booking %s moved %s -> %s by rider %s", booking_id, current, target, actor_id)
        return publish_booking(booking)

    @staticmethod
    def cancel_booking(booking_id, actor_id, reason=None):
        booking = BookingService._load(booking_id)
        if not can_update_booking(booking, actor_id):
            raise NotAuthorized("Only the booking owner or assigned rider can cancel it.")

        current = booking.status
        if not can_transition(current, CANCELLED):
            raise InvalidTransition(f"A booking that is {current.replace('_', ' ')} cannot be cancelled.")

        role = "owner" if actor_id == booking.user_id else "rider"
        if role not in CANCEL_ACTORS.get(current, set()):
            raise NotAuthorized(f"The {role} cannot cancel a booking that is {current}.")

        now = utcnow()
        values = {
            "status": CANCELLED,
            "updated_at": now,
            "cancelled_at": now,
            "cancelled_by": actor_id,
            "cancellation_reason": (reason or "").strip() or None,
        }
        if booking.rider_id is None:
            rider_condition = Booking.rider_id.is_(None)
        else:
            rider_condition = Booking.rider_id == booking.rider_id

        with store_write(f"cancelling booking {booking_id}"):
            matched = BookingService._conditioned_write(booking_id, current, values, rider_condition)
            if matched != 1:
                db.session.rollback()
                raise InvalidTransition("Booking changed before it could be cancelled. Refresh and try again.")
            db.session.commit()
            booking = BookingService._refetch(booking_id)
        current_app.logger.info("Booking %s cancelled from %s by %s %s", booking_id, current, role, actor_id)
        return publish_booking(booking)
