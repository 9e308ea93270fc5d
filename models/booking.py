import re

from models.db import db
from utils.clock import shelter_now

WALK_TYPES = ("morning", "evening")
# 24-hour HH:MM
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    dog_id = db.Column(db.Integer, db.ForeignKey("dogs.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    walk_type = db.Column(db.String(10), nullable=False)
    scheduled_time = db.Column(db.String(5), nullable=False)  # HH:MM, 24h

    status = db.Column(db.String(20), nullable=False, default="scheduled")
    # status values: scheduled, cancelled, completed

    notes = db.Column(db.Text, nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    # set on the replacement row when a booking is moved
    rescheduled_from_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("status IN ('scheduled', 'cancelled', 'completed')", name="ck_bookings_status"),
        db.CheckConstraint("walk_type IN ('morning', 'evening')", name="ck_bookings_walk_type"),
        # Hard business-rules: cancelled/completed rows keep their history, only live bookings are unique
        db.Index(
            "uq_booking_slot_scheduled", "dog_id", "date", "scheduled_time",
            unique=True,
            sqlite_where=db.text("status = 'scheduled'"),
            postgresql_where=db.text("status = 'scheduled'"),
        ),
        db.Index(
            "uq_booking_user_day_scheduled", "user_id", "date",
            unique=True,
            sqlite_where=db.text("status = 'scheduled'"),
            postgresql_where=db.text("status = 'scheduled'"),
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "dog_id": self.dog_id,
            "date": self.date.isoformat(),
            "walk_type": self.walk_type,
            "scheduled_time": self.scheduled_time,
            "status": self.status,
            "notes": self.notes,
            "cancellation_reason": self.cancellation_reason,
            "rescheduled_from_id": self.rescheduled_from_id,
            "created_at": self.created_at.isoformat(),
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
