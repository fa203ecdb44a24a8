from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from swiftride.services import ChatService, ProfileService
from swiftride.services.chat_service import parse_content

api_message_bp = Blueprint("api_message", __name__)


def _serialize(rows):
    profiles = ProfileService.profiles_by_ids(row.sender_id for row in rows)
    items = []
    for row in rows:
        kind, value = parse_content(row.content)
        items.append(
            {
                **row.to_dict(),
                "kind": kind,
                "url": value if kind != "text" else None,
                "sender": profiles.get(row.sender_id),
            }
        )
    return items


@api_message_bp.get("/<int:booking_id>/messages")
@login_required
def list_messages(booking_id):
    return jsonify(_serialize(ChatService.list_messages(booking_id, current_user.id)))


@api_message_bp.post("/<int:booking_id>/messages")
@login_required
def send_message(booking_id):
    payload = request.get_json(silent=True) or {}
    row = ChatService.post_message(booking_id, current_user.id, payload.get("content"))
    return jsonify(_serialize([row])[0]), 201


@api_message_bp.post("/<int:booking_id>/attachments")
@login_required
def upload_attachment(booking_id):
    kind = (request.form.get("kind") or "file").strip().lower()
    row = ChatService.post_attachment(booking_id, current_user.id, request.files.get("attachment"), kind=kind)
    return jsonify(_serialize([row])[0]), 201
