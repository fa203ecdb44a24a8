from swiftride.extensions import db
from swiftride.models.base import PKType, TimestampMixin, isoformat

PENDING = "pending"
ACCEPTED = "accepted"
ON_THE_WAY = "on_the_way"
COMPLETED = "completed"
CANCELLED = "cancelled"

BOOKING_STATUSES = (PENDING, ACCEPTED, ON_THE_WAY, COMPLETED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})
BOOKING_TYPES = ("trip", "task")


class Booking(TimestampMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    user_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rider_id = db.Column(PKType, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    pickup_location = db.Column(db.Text, nullable=False)
    dropoff_location = db.Column(db.Text, nullable=False)
    scheduled_time = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    is_asap = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(24), nullable=False, default=PENDING, index=True)
    booking_type = db.Column(db.String(12), nullable=False, default="trip")
    name = db.Column(db.String(120), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Placeholders; pricing and routing are not computed here.
    price = db.Column(db.Numeric(10, 2), nullable=True)
    distance = db.Column(db.Numeric(10, 2), nullable=True)
    duration = db.Column(db.Integer, nullable=True)

    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(PKType, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    owner = db.relationship("User", foreign_keys=[user_id])
    rider = db.relationship("User", foreign_keys=[rider_id])
    messages = db.relationship("Message", back_populates="booking", lazy="dynamic", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("ix_bookings_user_status", "user_id", "status"),
        db.Index("ix_bookings_rider_status", "rider_id", "status"),
        db.CheckConstraint(
            "status IN ('pending', 'accepted', 'on_the_way', 'completed', 'cancelled')",
            name="ck_booking_status",
        ),
        db.CheckConstraint("booking_type IN ('trip', 'task')", name="ck_booking_type"),
        db.CheckConstraint("status != 'pending' OR rider_id IS NULL", name="ck_booking_pending_unassigned"),
        db.CheckConstraint(
            "status NOT IN ('accepted', 'on_the_way', 'completed') OR rider_id IS NOT NULL",
            name="ck_booking_rider_assigned",
        ),
        db.CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL) OR (status != 'completed' AND completed_at IS NULL)",
            name="ck_booking_completed_at",
        ),
        db.CheckConstraint(
            "(status = 'cancelled' AND cancelled_at IS NOT NULL AND cancelled_by IS NOT NULL)"
            " OR (status != 'cancelled' AND cancelled_at IS NULL AND cancelled_by IS NULL)",
            name="ck_booking_cancelled_fields",
        ),
    )

    def is_party(self, principal_id):
        return principal_id is not None and principal_id in {self.user_id, self.rider_id}

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "rider_id": self.rider_id,
            "pickup_location": self.pickup_location,
            "dropoff_location": self.dropoff_location,
            "scheduled_time": isoformat(self.scheduled_time),
            "is_asap": self.is_asap,
            "status": self.status,
            "booking_type": self.booking_type,
            "name": self.name,
            "notes": self.notes,
            "price": str(self.price) if self.price is not None else None,
            "distance": str(self.distance) if self.distance is not None else None,
            "duration": self.duration,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
            "completed_at": isoformat(self.completed_at),
            "cancelled_at": isoformat(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
        }
