from models.db import db

class SweepLease(db.Model):
    __tablename__ = "sweep_leases"

    # one row per periodic job
    name = db.Column(db.String(64), primary_key=True)
    holder = db.Column(db.String(64), nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
