from flask import Blueprint, jsonify, g, request

from security.rbac import require_roles
from services.calendar_guard import CalendarGuard
from services.deactivation_sweeper import DeactivationSweeper
from services.dog_catalog import DogCatalog
from services.errors import InvalidBookingInput
from services.policy_store import PolicyStore
from services.request_workflow import RequestWorkflow, EXPERIENCE, REACTIVATION
from routes._parsing import parse_date
from routes.booking import dog_json

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

REQUEST_KINDS = {EXPERIENCE, REACTIVATION}


def _request_kind(kind: str) -> str:
    if kind not in REQUEST_KINDS:
        raise InvalidBookingInput("Unknown request type")
    return kind


# ---------- settings ----------
@admin_bp.get("/settings")
@require_roles("ADMIN")
def get_settings():
    return jsonify(PolicyStore().all()), 200


@admin_bp.put("/settings/<key>")
@require_roles("ADMIN")
def update_setting(key: str):
    data = request.get_json(silent=True) or {}
    value = PolicyStore().set(g.actor, key, data.get("value"))
    return jsonify(key=key, value=value), 200


@admin_bp.post("/settings/reset")
@require_roles("ADMIN")
def reset_settings():
    return jsonify(PolicyStore().reset_defaults(g.actor)), 200


# ---------- blocked dates ----------
@admin_bp.get("/blocked-dates")
@require_roles("ADMIN")
def list_blocked_dates():
    return jsonify([
        {"date": b.date.isoformat(), "reason": b.reason, "created_at": b.created_at.isoformat()}
        for b in CalendarGuard().list()
    ]), 200


@admin_bp.post("/blocked-dates")
@require_roles("ADMIN")
def block_date():
    data = request.get_json(silent=True) or {}
    row = CalendarGuard().block(g.actor, parse_date(data.get("date")), data.get("reason"))
    return jsonify(date=row.date.isoformat(), reason=row.reason), 201


@admin_bp.delete("/blocked-dates/<day>")
@require_roles("ADMIN")
def unblock_date(day: str):
    CalendarGuard().unblock(g.actor, parse_date(day))
    return jsonify(message="Unblocked"), 200


# ---------- dogs ----------
@admin_bp.post("/dogs")
@require_roles("ADMIN")
def create_dog():
    data = request.get_json(silent=True) or {}
    dog = DogCatalog().add(
        g.actor,
        name=data.get("name"),
        breed=data.get("breed"),
        category=data.get("category") or "green",
        size=data.get("size"),
        age=data.get("age"),
        special_needs=data.get("special_needs"),
        default_morning_time=data.get("default_morning_time"),
        default_evening_time=data.get("default_evening_time"),
    )
    return jsonify(dog_json(dog)), 201


@admin_bp.post("/dogs/<int:dog_id>/availability")
@require_roles("ADMIN")
def set_dog_availability(dog_id: int):
    data = request.get_json(silent=True) or {}
    dog = DogCatalog().set_availability(g.actor, dog_id, bool(data.get("available")), data.get("reason"))
    return jsonify(id=dog.id, is_available=dog.is_available, unavailable_reason=dog.unavailable_reason), 200


# ---------- account requests ----------
@admin_bp.get("/requests/<kind>")
@require_roles("ADMIN")
def list_pending_requests(kind: str):
    rows = RequestWorkflow().list_pending(_request_kind(kind))
    return jsonify([r.to_dict() for r in rows]), 200


@admin_bp.post("/requests/<kind>/<int:request_id>/resolve")
@require_roles("ADMIN")
def resolve_request(kind: str, request_id: int):
    data = request.get_json(silent=True) or {}
    workflow = RequestWorkflow()
    resolve = {
        EXPERIENCE: workflow.resolve_experience_request,
        REACTIVATION: workflow.resolve_reactivation_request,
    }[_request_kind(kind)]
    req = resolve(request_id, g.actor, bool(data.get("approve")), data.get("message"))
    return jsonify(req.to_dict()), 200


# ---------- jobs ----------
@admin_bp.post("/sweep")
@require_roles("ADMIN")
def run_sweep():
    result = DeactivationSweeper().run()
    return jsonify(skipped=result.skipped, deactivated=result.deactivated_ids), 200
