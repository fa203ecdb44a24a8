from swiftride.errors import AppError, NotFound, ValidationError
from swiftride.extensions import db
from swiftride.models import RiderProfile
from swiftride.validation import parse_bool

EDITABLE_FIELDS = ("full_name", "phone_number", "vehicle_type", "vehicle_plate", "current_location")


class RiderService:
    @staticmethod
    def get_rider_profile(user_id):
        return RiderProfile.query.filter_by(user_id=user_id).first()

    @staticmethod
    def is_rider(user_id):
        return RiderService.get_rider_profile(user_id) is not None

    @staticmethod
    def require_rider_profile(user_id):
        rider = RiderService.get_rider_profile(user_id)
        if not rider:
            raise NotFound("Rider profile not found.")
        return rider

    @staticmethod
    def register_rider(user_id, payload):
        if RiderService.is_rider(user_id):
            raise AppError("Already registered as a rider.", 409)

        vehicle_type = (payload.get("vehicle_type") or "").strip()
        vehicle_plate = (payload.get("vehicle_plate") or "").strip().upper()
        if not vehicle_type or not vehicle_plate:
            raise ValidationError("Vehicle type and plate are required.")

        rider = RiderProfile(
            user_id=user_id,
            full_name=(payload.get("full_name") or "").strip() or None,
            phone_number=(payload.get("phone_number") or "").strip() or None,
            vehicle_type=vehicle_type,
            vehicle_plate=vehicle_plate,
            current_location=(payload.get("current_location") or "").strip() or None,
            is_available=parse_bool(payload.get("is_available", False), "is_available"),
        )
        db.session.add(rider)
        db.session.commit()
        return rider

    @staticmethod
    def update_rider_profile(user_id, payload):
        rider = RiderService.require_rider_profile(user_id)
        for field in EDITABLE_FIELDS:
            if field not in payload:
                continue
            value = (payload.get(field) or "").strip()
            if field in {"vehicle_type", "vehicle_plate"} and not value:
                raise ValidationError("Vehicle type and plate cannot be empty.")
            if field == "vehicle_plate":
                value = value.upper()
            setattr(rider, field, value or None)
        if "is_available" in payload:
            rider.is_available = parse_bool(payload["is_available"], "is_available")
        db.session.commit()
        return rider

    @staticmethod
    def set_availability(user_id, is_available):
        return RiderService.update_rider_profile(user_id, {"is_available": is_available})
