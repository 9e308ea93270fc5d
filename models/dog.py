from models.db import db
from utils.clock import shelter_now

DOG_SIZES = ("small", "medium", "large")

class Dog(db.Model):
    __tablename__ = "dogs"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    breed = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(10), nullable=True)
    age = db.Column(db.Integer, nullable=True)

    # minimum experience level a walker needs
    category = db.Column(db.String(10), nullable=False, default="green")

    special_needs = db.Column(db.Text, nullable=True)
    default_morning_time = db.Column(db.String(5), nullable=True)  # HH:MM
    default_evening_time = db.Column(db.String(5), nullable=True)

    is_available = db.Column(db.Boolean, default=True, nullable=False)
    unavailable_reason = db.Column(db.String(255), nullable=True)
    unavailable_since = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)

    __table_args__ = (
        db.CheckConstraint("category IN ('green', 'blue', 'orange')", name="ck_dogs_category"),
        db.CheckConstraint("size IS NULL OR size IN ('small', 'medium', 'large')", name="ck_dogs_size"),
        db.Index("ix_dogs_available", "is_available", "category"),
    )
