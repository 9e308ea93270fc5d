from models.account_request import ExperienceRequest, ReactivationRequest
from models.user import level_rank
from security.rbac import require_admin
from services import events
from services.errors import (
    AccountAlreadyActive,
    DuplicatePendingRequest,
    InvalidRequestedLevel,
    RequestAlreadyResolved,
    RequestNotFound,
    UserInactive,
)
from services.transaction import atomic, run_atomic
from services.user_directory import UserDirectory
from utils.audit import log_event
from utils.clock import shelter_now

EXPERIENCE = "experience"
REACTIVATION = "reactivation"

_MODELS = {
    EXPERIENCE: ExperienceRequest,
    REACTIVATION: ReactivationRequest,
}

PROMOTABLE_LEVELS = ("blue", "orange")


class RequestWorkflow:
    """
    Experience-upgrade and reactivation requests.

    Submitting keeps at most one pending request per user and kind (also a
    partial unique index). Resolving changes the request and the account in
    the same transaction, so an approval is never half-applied.
    """

    def __init__(self, users=None, clock=shelter_now):
        self.clock = clock
        self.users = users or UserDirectory(clock=clock)

    @staticmethod
    def _has_pending(model, user_id) -> bool:
        return model.query.filter_by(user_id=user_id, status="pending").first() is not None

    def _submit(self, model, user_id, build, action):
        def work(session):
            if self._has_pending(model, user_id):
                raise DuplicatePendingRequest()
            row = build()
            session.add(row)
            session.flush()
            log_event(action, user_id=user_id,
                      entity=model.__tablename__, entity_id=row.id)
            return row

        return run_atomic(work, conflict=lambda exc: DuplicatePendingRequest())

    def _resolve(self, kind, request_id, actor, approve, message, apply):
        require_admin(actor)
        model = _MODELS[kind]

        with atomic():
            req = (
                model.query
                .filter_by(id=request_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if req is None:
                raise RequestNotFound(request_id=request_id)
            if req.status != "pending":
                raise RequestAlreadyResolved(status=req.status)

            now = self.clock()
            req.status = "approved" if approve else "denied"
            req.admin_message = message
            req.resolved_at = now
            req.resolved_by = actor.user_id
            if approve:
                apply(self.users.require(req.user_id), req, now)
            log_event("REQUEST_RESOLVE", user_id=actor.user_id, entity=model.__tablename__,
                      entity_id=req.id, metadata={"approved": bool(approve), "for_user": req.user_id})

        events.emit(events.request_resolved, self, kind=kind, request=req, approved=bool(approve))
        return req

    # ---------- experience upgrades ----------
    def submit_experience_request(self, user_id: int, requested_level: str) -> ExperienceRequest:
        if requested_level not in PROMOTABLE_LEVELS:
            raise InvalidRequestedLevel("Requested level must be 'blue' or 'orange'")
        user = self.users.require(user_id)
        if not user.is_active:
            raise UserInactive()
        if level_rank(requested_level) <= level_rank(user.experience_level):
            raise InvalidRequestedLevel(current=user.experience_level, requested=requested_level)

        return self._submit(
            ExperienceRequest, user_id,
            lambda: ExperienceRequest(user_id=user_id, requested_level=requested_level,
                                      status="pending", created_at=self.clock()),
            "EXPERIENCE_REQUEST_SUBMIT",
        )

    def resolve_experience_request(self, request_id, actor, approve: bool, message=None) -> ExperienceRequest:
        def promote(user, req, now):
            self.users.set_experience_level(user, req.requested_level)

        return self._resolve(EXPERIENCE, request_id, actor, approve, message, promote)

    # ---------- reactivation ----------
    def submit_reactivation_request(self, user_id: int, reason=None) -> ReactivationRequest:
        user = self.users.require(user_id)
        if user.is_active:
            raise AccountAlreadyActive()
        reason = (reason or "").strip() or None

        return self._submit(
            ReactivationRequest, user_id,
            lambda: ReactivationRequest(user_id=user_id, reason=reason,
                                        status="pending", created_at=self.clock()),
            "REACTIVATION_REQUEST_SUBMIT",
        )

    def resolve_reactivation_request(self, request_id, actor, approve: bool, message=None) -> ReactivationRequest:
        def reactivate(user, req, now):
            self.users.activate(user, when=now)

        return self._resolve(REACTIVATION, request_id, actor, approve, message, reactivate)

    def list_pending(self, kind: str):
        model = _MODELS[kind]
        return model.query.filter_by(status="pending").order_by(model.created_at.asc(), model.id.asc()).all()
