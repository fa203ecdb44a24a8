from flask_login import UserMixin

from swiftride.extensions import db
from swiftride.models.base import PKType, TimestampMixin


class User(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active_user = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    profile = db.relationship("Profile", back_populates="user", uselist=False)
    rider_profile = db.relationship("RiderProfile", back_populates="user", uselist=False)
