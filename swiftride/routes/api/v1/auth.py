from flask import Blueprint, jsonify, request
from flask_login import login_required, login_user, logout_user

from swiftride.extensions import limiter
from swiftride.services import AuthService

api_auth_bp = Blueprint("api_auth", __name__)


@api_auth_bp.post("/register")
@limiter.limit("10 per hour")
def api_register():
    payload = request.get_json(silent=True) or {}
    user = AuthService.register_user(
        email=payload.get("email", ""),
        password=payload.get("password", ""),
        username=payload.get("username"),
    )
    login_user(user)
    return jsonify({"id": user.id, "email": user.email}), 201


@api_auth_bp.post("/login")
@limiter.limit("20 per hour")
def api_login():
    payload = request.get_json(silent=True) or {}
    user = AuthService.authenticate_user(payload.get("email", ""), payload.get("password", ""))
    login_user(user)
    return jsonify({"id": user.id, "email": user.email})


@api_auth_bp.post("/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})
