from swiftride.extensions import db
from swiftride.models.base import PKType, TimestampMixin


class RiderProfile(TimestampMixin, db.Model):
    __tablename__ = "rider_profiles"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    user_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    vehicle_type = db.Column(db.String(40), nullable=False)
    vehicle_plate = db.Column(db.String(20), nullable=False)
    is_available = db.Column(db.Boolean, nullable=False, default=False, index=True)
    current_location = db.Column(db.String(255), nullable=True)
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=5)
    total_trips = db.Column(db.Integer, nullable=False, default=0)

    user = db.relationship("User", back_populates="rider_profile")

    __table_args__ = (
        db.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_rider_rating_range"),
        db.CheckConstraint("total_trips >= 0", name="ck_rider_total_trips"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "vehicle_type": self.vehicle_type,
            "vehicle_plate": self.vehicle_plate,
            "is_available": self.is_available,
            "current_location": self.current_location,
            "rating": float(self.rating) if self.rating is not None else None,
            "total_trips": self.total_trips,
        }
