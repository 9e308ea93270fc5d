from models.db import db
from utils.clock import shelter_now

class BlockedDate(db.Model):
    __tablename__ = "blocked_dates"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, unique=True, nullable=False, index=True)
    reason = db.Column(db.String(255), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)
