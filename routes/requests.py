from flask import Blueprint, request, jsonify, g

from services.request_workflow import RequestWorkflow
from utils.auth_context import login_required

requests_bp = Blueprint("requests", __name__, url_prefix="/requests")


@requests_bp.post("/experience")
@login_required
def request_experience_upgrade():
    data = request.get_json(silent=True) or {}
    req = RequestWorkflow().submit_experience_request(g.actor.user_id, data.get("requested_level"))
    return jsonify(req.to_dict()), 201


@requests_bp.post("/reactivation")
@login_required
def request_reactivation():
    data = request.get_json(silent=True) or {}
    req = RequestWorkflow().submit_reactivation_request(g.actor.user_id, data.get("reason"))
    return jsonify(req.to_dict()), 201
