from flask import Blueprint, request, jsonify, g

from services.booking_ledger import BookingLedger
from services.dog_catalog import DogCatalog
from utils.auth_context import login_required
from routes._parsing import parse_date, parse_int

booking_bp = Blueprint("booking", __name__)


def dog_json(d):
    return {
        "id": d.id,
        "name": d.name,
        "breed": d.breed,
        "category": d.category,
        "size": d.size,
        "age": d.age,
        "special_needs": d.special_needs,
        "default_morning_time": d.default_morning_time,
        "default_evening_time": d.default_evening_time,
    }


# ---------- WALKERS: view dogs ----------
@booking_bp.get("/dogs")
@login_required
def list_dogs():
    category = request.args.get("category")
    return jsonify([dog_json(d) for d in DogCatalog().list_available(category)]), 200


# ---------- WALKERS: book a walk (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/bookings")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = BookingLedger().create(
        g.actor,
        dog_id=parse_int(data.get("dog_id"), "dog_id"),
        day=parse_date(data.get("date")),
        walk_type=data.get("walk_type"),
        scheduled_time=data.get("scheduled_time"),
        notes=(data.get("notes") or "").strip() or None,
    )
    return jsonify(booking.to_dict()), 201


# ---------- WALKERS: upcoming walks ----------
@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    return jsonify([b.to_dict() for b in BookingLedger().list_upcoming(g.actor.user_id)]), 200


# ---------- WALKERS/ADMIN: cancel (notice window for walkers) ----------
@booking_bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = BookingLedger().cancel(booking_id, g.actor, data.get("reason"))
    return jsonify(booking.to_dict()), 200


@booking_bp.post("/bookings/<int:booking_id>/notes")
@login_required
def add_notes(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = BookingLedger().add_notes(booking_id, g.actor, data.get("notes"))
    return jsonify(booking.to_dict()), 200


@booking_bp.post("/bookings/<int:booking_id>/move")
@login_required
def move_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    old, new = BookingLedger().move(
        booking_id,
        g.actor,
        new_date=parse_date(data.get("date")),
        new_time=data.get("scheduled_time"),
        walk_type=data.get("walk_type"),
        reason=data.get("reason"),
    )
    return jsonify(cancelled=old.to_dict(), booking=new.to_dict()), 200
