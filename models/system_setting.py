from models.db import db
from utils.clock import shelter_now

class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=shelter_now, onupdate=shelter_now, nullable=False)
