from datetime import date

from sqlalchemy.exc import IntegrityError

from models.blocked_date import BlockedDate
from security.rbac import require_admin
from services.errors import BlockedDateNotFound, DateAlreadyBlocked, InvalidBookingInput
from services.transaction import atomic
from utils.audit import log_event


class CalendarGuard:
    """Shelter-wide closed days. No booking may target a blocked date."""

    def is_blocked(self, day: date) -> bool:
        return BlockedDate.query.filter_by(date=day).first() is not None

    def list(self, from_date=None):
        q = BlockedDate.query
        if from_date is not None:
            q = q.filter(BlockedDate.date >= from_date)
        return q.order_by(BlockedDate.date.asc()).all()

    def block(self, actor, day: date, reason: str) -> BlockedDate:
        require_admin(actor)
        reason = (reason or "").strip()
        if not reason:
            raise InvalidBookingInput("A reason is required to block a date")
        try:
            with atomic() as session:
                if self.is_blocked(day):
                    raise DateAlreadyBlocked(date=day.isoformat())
                row = BlockedDate(date=day, reason=reason, created_by=actor.user_id)
                session.add(row)
                session.flush()
                log_event("DATE_BLOCK", user_id=actor.user_id, entity="blocked_date",
                          entity_id=day.isoformat(), metadata={"reason": reason})
        except IntegrityError:
            raise DateAlreadyBlocked(date=day.isoformat())
        return row

    def unblock(self, actor, day: date) -> None:
        require_admin(actor)
        with atomic() as session:
            row = BlockedDate.query.filter_by(date=day).first()
            if row is None:
                raise BlockedDateNotFound(date=day.isoformat())
            session.delete(row)
            log_event("DATE_UNBLOCK", user_id=actor.user_id, entity="blocked_date",
                      entity_id=day.isoformat())
