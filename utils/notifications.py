import logging

from models.user import User
from services import events
from utils.emailer import send_email

logger = logging.getLogger(__name__)


def _deliver(user_id, subject, body):
    user = User.query.get(user_id)
    if user is None:
        return
    ok, error = send_email(user.email, subject, body)
    if not ok:
        logger.warning("Notification to user %s not sent: %s", user_id, error)


def on_booking_created(sender, booking, **extra):
    _deliver(
        booking.user_id,
        "Walk booked",
        f"Your {booking.walk_type} walk on {booking.date.isoformat()} at {booking.scheduled_time} is confirmed.",
    )


def on_booking_cancelled(sender, booking, by_admin=False, **extra):
    who = "by the shelter" if by_admin else ""
    reason = f"\nReason: {booking.cancellation_reason}" if booking.cancellation_reason else ""
    _deliver(
        booking.user_id,
        "Walk cancelled",
        f"Your walk on {booking.date.isoformat()} at {booking.scheduled_time} was cancelled {who}.{reason}",
    )


def on_request_resolved(sender, kind, request, approved, **extra):
    outcome = "approved" if approved else "denied"
    message = f"\n{request.admin_message}" if request.admin_message else ""
    _deliver(request.user_id, f"Your {kind} request was {outcome}", f"Your {kind} request was {outcome}.{message}")


def on_user_deactivated(sender, user, reason=None, **extra):
    _deliver(
        user.id,
        "Account deactivated",
        "Your walker account was deactivated after a long period without activity. "
        "You can ask for reactivation from your profile.",
    )


def register_notifications(app):
    if not app.config.get("NOTIFICATIONS_ENABLED"):
        return
    events.booking_created.connect(on_booking_created, weak=False)
    events.booking_cancelled.connect(on_booking_cancelled, weak=False)
    events.request_resolved.connect(on_request_resolved, weak=False)
    events.user_deactivated.connect(on_user_deactivated, weak=False)
