from flask import current_app

from swiftride.errors import NotAuthorized, NotFound, ValidationError
from swiftride.extensions import change_feed, db
from swiftride.models import Booking, Message
from swiftride.policies import can_read_messages, can_send_message
from swiftride.services.file_service import FileService
from swiftride.services.store import store_write

MESSAGES_RELATION = "messages"
CONTENT_TAGS = ("image", "file")


def parse_content(content):
    """Split ``image:<url>`` / ``file:<url>`` payloads; plain text is ``("text", content)``."""
    tag, sep, value = (content or "").partition(":")
    if sep and tag in CONTENT_TAGS and value.strip():
        return tag, value.strip()
    return "text", content


class ChatService:
    @staticmethod
    def _load_booking(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFound("Booking not found.")
        return booking

    @staticmethod
    def require_reader(booking_id, principal_id):
        booking = ChatService._load_booking(booking_id)
        if not can_read_messages(booking, principal_id):
            raise NotAuthorized("Only the booking owner and rider can read this chat.")
        return booking

    @staticmethod
    def list_messages(booking_id, principal_id):
        ChatService.require_reader(booking_id, principal_id)
        return (
            Message.query.filter_by(booking_id=booking_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    @staticmethod
    def post_message(booking_id, sender_id, content):
        booking = ChatService._load_booking(booking_id)
        if not can_send_message(booking, sender_id):
            raise NotAuthorized("Only the booking owner and rider can post in this chat.")
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message is required.")
        if len(text) > current_app.config["CHAT_MAX_MESSAGE_LENGTH"]:
            raise ValidationError("Message is too long.")

        row = Message(booking_id=booking_id, sender_id=sender_id, content=text)
        with store_write(f"posting to booking {booking_id}"):
            db.session.add(row)
            db.session.commit()
        change_feed.publish(MESSAGES_RELATION, row.to_dict())
        return row

    @staticmethod
    def post_attachment(booking_id, sender_id, storage, kind="file"):
        booking = ChatService._load_booking(booking_id)
        if not can_send_message(booking, sender_id):
            raise NotAuthorized("Only the booking owner and rider can post in this chat.")
        url = FileService.save_attachment(
            storage,
            booking_id,
            current_app.config["UPLOAD_DIR"],
            current_app.config["MEDIA_BASE_URL"],
            kind=kind,
        )
        return ChatService.post_message(booking_id, sender_id, f"{kind}:{url}")
