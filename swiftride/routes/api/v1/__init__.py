from flask import Blueprint

from swiftride.routes.api.v1.auth import api_auth_bp
from swiftride.routes.api.v1.bookings import api_booking_bp
from swiftride.routes.api.v1.messages import api_message_bp
from swiftride.routes.api.v1.profiles import api_profile_bp
from swiftride.routes.api.v1.riders import api_rider_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_auth_bp, url_prefix="/auth")
api_v1_bp.register_blueprint(api_profile_bp, url_prefix="/profiles")
api_v1_bp.register_blueprint(api_rider_bp, url_prefix="/riders")
api_v1_bp.register_blueprint(api_booking_bp, url_prefix="/bookings")
api_v1_bp.register_blueprint(api_message_bp, url_prefix="/bookings")
