from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from swiftride.decorators import rider_required
from swiftride.services import AcceptanceService, BookingService, ProfileService

api_booking_bp = Blueprint("api_booking", __name__)


def _with_customer(bookings):
    """Attach the owner's display profile, falling back to the booking name."""
    profiles = ProfileService.profiles_by_ids(b.user_id for b in bookings)
    items = []
    for booking in bookings:
        profile = profiles.get(booking.user_id) or {}
        items.append(
            {
                **booking.to_dict(),
                "user": {
                    "id": booking.user_id,
                    "username": booking.name or profile.get("username") or "Unknown User",
                    "avatar_url": profile.get("avatar_url"),
                },
            }
        )
    return items


@api_booking_bp.post("")
@login_required
def create_booking():
    payload = request.get_json(silent=True) or {}
    booking = BookingService.create_booking(
        owner_id=current_user.id,
        pickup_location=payload.get("pickup_location"),
        dropoff_location=payload.get("dropoff_location"),
        scheduled_time=payload.get("scheduled_time"),
        is_asap=payload.get("is_asap", False),
        booking_type=payload.get("booking_type", "trip"),
        name=payload.get("name"),
        notes=payload.get("notes"),
    )
    return jsonify(booking.to_dict()), 201


@api_booking_bp.get("/me")
@login_required
def my_bookings():
    rows = BookingService.list_bookings_for_principal(current_user.id, status=request.args.get("status"))
    return jsonify([b.to_dict() for b in rows])


@api_booking_bp.get("/available")
@login_required
@rider_required
def available_bookings():
    return jsonify(_with_customer(BookingService.list_available_bookings(current_user.id)))


@api_booking_bp.get("/active")
@login_required
@rider_required
def active_bookings():
    return jsonify(_with_customer(BookingService.list_active_bookings(current_user.id)))


@api_booking_bp.get("/completed")
@login_required
def completed_bookings():
    return jsonify(_with_customer(BookingService.list_completed_bookings(current_user.id)))


@api_booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id):
    return jsonify(BookingService.get_booking(booking_id, current_user.id).to_dict())


@api_booking_bp.post("/<int:booking_id>/accept")
@login_required
@rider_required
def accept_booking(booking_id):
    booking = AcceptanceService.accept_booking(booking_id, current_user.id)
    return jsonify(booking.to_dict())


@api_booking_bp.patch("/<int:booking_id>/status")
@login_required
def update_status(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = BookingService.advance_status(booking_id, current_user.id, payload.get("status"))
    return jsonify(booking.to_dict())


@api_booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = BookingService.cancel_booking(booking_id, current_user.id, payload.get("reason"))
    return jsonify(booking.to_dict())
