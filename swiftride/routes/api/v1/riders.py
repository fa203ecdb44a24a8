from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from swiftride.decorators import rider_required
from swiftride.services import RiderService

api_rider_bp = Blueprint("api_rider", __name__)


@api_rider_bp.post("")
@login_required
def become_rider():
    payload = request.get_json(silent=True) or {}
    rider = RiderService.register_rider(current_user.id, payload)
    return jsonify(rider.to_dict()), 201


@api_rider_bp.get("/me")
@login_required
@rider_required
def my_rider_profile():
    return jsonify(RiderService.require_rider_profile(current_user.id).to_dict())


@api_rider_bp.patch("/me")
@login_required
@rider_required
def update_rider_profile():
    payload = request.get_json(silent=True) or {}
    rider = RiderService.update_rider_profile(current_user.id, payload)
    return jsonify(rider.to_dict())


@api_rider_bp.post("/me/availability")
@login_required
@rider_required
def set_availability():
    payload = request.get_json(silent=True) or {}
    rider = RiderService.set_availability(current_user.id, payload.get("is_available", True))
    return jsonify({"is_available": rider.is_available})
