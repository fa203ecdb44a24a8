from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from swiftride.services import ProfileService, RiderService

api_profile_bp = Blueprint("api_profile", __name__)


@api_profile_bp.get("/me")
@login_required
def my_profile():
    profile = ProfileService.get_profile(current_user.id)
    rider = RiderService.get_rider_profile(current_user.id)
    return jsonify({**profile.to_dict(), "is_rider": rider is not None})


@api_profile_bp.put("/me")
@login_required
def update_my_profile():
    payload = request.get_json(silent=True) or {}
    profile = ProfileService.upsert_profile(
        profile_id=current_user.id,
        principal_id=current_user.id,
        username=payload.get("username"),
        avatar_url=payload.get("avatar_url"),
    )
    return jsonify(profile.to_dict())


@api_profile_bp.get("/<int:user_id>")
@login_required
def get_profile(user_id):
    return jsonify(ProfileService.get_profile(user_id).to_dict())
