from swiftride.extensions import db
from swiftride.models.base import PKType, TimestampMixin, isoformat


class Profile(TimestampMixin, db.Model):
    """Display identity, one per principal and keyed by the user id."""

    __tablename__ = "profiles"

    id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    username = db.Column(db.String(80), nullable=False)
    avatar_url = db.Column(db.String(500), nullable=True)

    user = db.relationship("User", back_populates="profile")

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "avatar_url": self.avatar_url,
            "updated_at": isoformat(self.updated_at),
        }
