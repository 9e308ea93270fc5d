from models.db import db
from utils.clock import shelter_now

REQUEST_STATUSES = ("pending", "approved", "denied")

_PENDING = db.text("status = 'pending'")


class ExperienceRequest(db.Model):
    __tablename__ = "experience_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    requested_level = db.Column(db.String(10), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    admin_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        db.CheckConstraint("requested_level IN ('blue', 'orange')", name="ck_experience_requests_level"),
        db.CheckConstraint("status IN ('pending', 'approved', 'denied')", name="ck_experience_requests_status"),
        # at most one pending request per user
        db.Index(
            "uq_experience_request_pending", "user_id",
            unique=True, sqlite_where=_PENDING, postgresql_where=_PENDING,
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "requested_level": self.requested_level,
            "status": self.status,
            "admin_message": self.admin_message,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "resolved_by": self.resolved_by,
        }


class ReactivationRequest(db.Model):
    __tablename__ = "reactivation_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")
    admin_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'approved', 'denied')", name="ck_reactivation_requests_status"),
        db.Index(
            "uq_reactivation_request_pending", "user_id",
            unique=True, sqlite_where=_PENDING, postgresql_where=_PENDING,
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "reason": self.reason,
            "status": self.status,
            "admin_message": self.admin_message,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "resolved_by": self.resolved_by,
        }
