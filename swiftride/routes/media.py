from flask import Blueprint, abort, current_app, send_from_directory
from flask_login import current_user, login_required

from swiftride.services import ChatService

media_bp = Blueprint("media", __name__)


@media_bp.get("/media/<path:filename>")
@login_required
def serve_media(filename):
    # Attachments live under bookings/<booking_id>/; only that booking's chat parties may fetch them.
    parts = filename.split("/")
    if len(parts) != 3 or parts[0] != "bookings" or not parts[1].isdigit():
        abort(404)
    ChatService.require_reader(int(parts[1]), current_user.id)
    return send_from_directory(current_app.config["UPLOAD_DIR"], filename)
