from swiftride.extensions import db
from swiftride.models.base import PKType, isoformat, utcnow


class Message(db.Model):
    """One chat utterance on a booking. Rows are never updated."""

    __tablename__ = "messages"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    booking = db.relationship("Booking", back_populates="messages")
    sender = db.relationship("User", foreign_keys=[sender_id])

    __table_args__ = (db.Index("ix_messages_booking_created", "booking_id", "created_at", "id"),)

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "sender_id": self.sender_id,
            "content": self.content,
            "created_at": isoformat(self.created_at),
        }
