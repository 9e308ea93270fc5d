import logging
from datetime import date, datetime, time, timedelta

from models.booking import Booking, TIME_RE, WALK_TYPES
from models.user import level_rank
from security.rbac import require_admin, require_owner_or_admin
from services import events
from services.calendar_guard import CalendarGuard
from services.dog_catalog import DogCatalog
from services.errors import (
    BookingNotCancellable,
    BookingNotEditable,
    BookingNotFound,
    CancellationTooLate,
    DateBlocked,
    DateOutOfWindow,
    DogUnavailable,
    ExperienceLevelInsufficient,
    InvalidBookingInput,
    SlotAlreadyBooked,
    UserAlreadyBookedThatDay,
    UserInactive,
    UserUnverified,
)
from services.policy_store import PolicyStore
from services.transaction import atomic, run_atomic
from services.user_directory import UserDirectory
from utils.audit import log_event
from utils.clock import shelter_now

logger = logging.getLogger(__name__)


def booking_start(booking: Booking) -> datetime:
    return datetime.combine(booking.date, time.fromisoformat(booking.scheduled_time))


def _conflict_from_integrity(exc):
    # SQLite names the columns, PostgreSQL names the index
    msg = str(getattr(exc, "orig", exc))
    if "uq_booking_user_day" in msg or ("user_id" in msg and "scheduled_time" not in msg):
        return UserAlreadyBookedThatDay()
    return SlotAlreadyBooked()


class UpcomingBookings:
    """
    Scheduled bookings from ``today`` on, ordered by date then time.
    Every iteration runs a fresh query, so the sequence can be walked again.
    """

    def __init__(self, user_id: int, today: date, batch_size: int = 100):
        self.user_id = user_id
        self.today = today
        self.batch_size = batch_size

    def query(self):
        return (
            Booking.query
            .filter(
                Booking.user_id == self.user_id,
                Booking.status == "scheduled",
                Booking.date >= self.today,
            )
            .order_by(Booking.date.asc(), Booking.scheduled_time.asc(), Booking.id.asc())
        )

    def __iter__(self):
        # HH:MM is zero-padded, so string order is time order
        return iter(self.query().yield_per(self.batch_size))


class BookingLedger:
    """
    Creates, cancels and moves bookings.

    Each operation reads the acting user, dog, calendar and a fresh policy
    snapshot, validates, and writes inside one transaction. The partial
    unique indexes on ``bookings`` are the last line of defence: a commit
    that loses a race is retried, and the retry's re-validation reports
    the winner as ``SlotAlreadyBooked`` / ``UserAlreadyBookedThatDay``.
    """

    def __init__(self, policies=None, dogs=None, users=None, calendar=None, clock=shelter_now):
        self.clock = clock
        self.policies = policies or PolicyStore()
        self.dogs = dogs or DogCatalog(clock=clock)
        self.users = users or UserDirectory(clock=clock)
        self.calendar = calendar or CalendarGuard()

    # ---------- validation ----------
    @staticmethod
    def _check_input(day, walk_type, scheduled_time):
        if not isinstance(day, date) or isinstance(day, datetime):
            raise InvalidBookingInput("date must be a calendar date (YYYY-MM-DD)")
        if walk_type not in WALK_TYPES:
            raise InvalidBookingInput("walk_type must be 'morning' or 'evening'")
        if not isinstance(scheduled_time, str) or not TIME_RE.match(scheduled_time):
            raise InvalidBookingInput("scheduled_time must be HH:MM (24-hour)")

    def _validate_slot(self, user, dog_id, day, scheduled_time, policy, today, exclude_booking_id=None):
        # first failure wins
        if user is None or not user.is_active:
            raise UserInactive()
        if not user.is_verified:
            raise UserUnverified()

        dog = self.dogs.get(dog_id)
        if dog is None or not dog.is_available:
            raise DogUnavailable(reason=dog.unavailable_reason if dog else None)

        if level_rank(user.experience_level) < level_rank(dog.category):
            raise ExperienceLevelInsufficient(required=dog.category, current=user.experience_level)

        last_day = today + timedelta(days=policy.booking_advance_days)
        if day < today or day > last_day:
            raise DateOutOfWindow(earliest=today.isoformat(), latest=last_day.isoformat())

        if self.calendar.is_blocked(day):
            raise DateBlocked(date=day.isoformat())

        slot_q = Booking.query.filter_by(dog_id=dog_id, date=day, scheduled_time=scheduled_time, status="scheduled")
        day_q = Booking.query.filter_by(user_id=user.id, date=day, status="scheduled")
        if exclude_booking_id is not None:
            slot_q = slot_q.filter(Booking.id != exclude_booking_id)
            day_q = day_q.filter(Booking.id != exclude_booking_id)

        if slot_q.first() is not None:
            raise SlotAlreadyBooked()
        if day_q.first() is not None:
            raise UserAlreadyBookedThatDay()
        return dog

    @staticmethod
    def _check_notice(booking, policy, now):
        deadline = booking_start(booking) - timedelta(hours=policy.cancellation_notice_hours)
        if now > deadline:
            raise CancellationTooLate(
                f"Cancellation not allowed within {policy.cancellation_notice_hours} hours of the walk",
                deadline=deadline.isoformat(),
            )

    @staticmethod
    def _locked_booking(booking_id, actor):
        booking = (
            Booking.query
            .filter_by(id=booking_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        # someone else's booking is indistinguishable from a missing one
        if booking is None or (booking.user_id != actor.user_id and not actor.is_admin):
            raise BookingNotFound(booking_id=booking_id)
        return booking

    # ---------- operations ----------
    def create(self, actor, dog_id, day, walk_type, scheduled_time, notes=None, user_id=None) -> Booking:
        target_id = actor.user_id if user_id is None else user_id
        if target_id != actor.user_id:
            require_admin(actor)
        self._check_input(day, walk_type, scheduled_time)

        def work(session):
            policy = self.policies.snapshot()
            now = self.clock()
            user = self.users.get_for_update(target_id)
            self._validate_slot(user, dog_id, day, scheduled_time, policy, now.date())

            booking = Booking(
                user_id=user.id,
                dog_id=dog_id,
                date=day,
                walk_type=walk_type,
                scheduled_time=scheduled_time,
                status="scheduled",
                notes=notes,
                created_at=now,
            )
            session.add(booking)
            session.flush()
            self.users.touch_activity(user, now)
            log_event("BOOKING_CREATE", user_id=actor.user_id, entity="booking", entity_id=booking.id,
                      metadata={"dog_id": dog_id, "date": day.isoformat(), "time": scheduled_time})
            return booking

        booking = run_atomic(work, conflict=_conflict_from_integrity)
        events.emit(events.booking_created, self, booking=booking)
        return booking

    def cancel(self, booking_id, actor, reason=None) -> Booking:
        reason = (reason or "").strip() or None

        with atomic():
            booking = self._locked_booking(booking_id, actor)
            if booking.status != "scheduled":
                raise BookingNotCancellable(status=booking.status)

            now = self.clock()
            if not actor.is_admin:
                self._check_notice(booking, self.policies.snapshot(), now)

            booking.status = "cancelled"
            booking.cancelled_at = now
            booking.cancellation_reason = reason
            log_event("BOOKING_CANCEL", user_id=actor.user_id, entity="booking", entity_id=booking.id,
                      metadata={"reason": reason, "by_admin": actor.is_admin})

        events.emit(events.booking_cancelled, self, booking=booking, by_admin=actor.is_admin)
        return booking

    def add_notes(self, booking_id, actor, notes) -> Booking:
        with atomic():
            booking = Booking.query.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)
            require_owner_or_admin(actor, booking.user_id)
            if booking.status not in ("scheduled", "completed"):
                raise BookingNotEditable(status=booking.status)

            booking.notes = (notes or "").strip() or None
            log_event("BOOKING_NOTES", user_id=actor.user_id, entity="booking", entity_id=booking.id)
        return booking

    def move(self, booking_id, actor, new_date, new_time, walk_type=None, reason=None):
        """
        Cancel-and-recreate in one transaction. The old row stays as a
        cancelled record; the new row points back to it. Returns (old, new).
        """
        self._check_input(new_date, walk_type or WALK_TYPES[0], new_time)
        reason = (reason or "").strip() or "Moved"

        def work(session):
            policy = self.policies.snapshot()
            now = self.clock()
            old = self._locked_booking(booking_id, actor)
            if old.status != "scheduled":
                raise BookingNotCancellable(status=old.status)
            if not actor.is_admin:
                self._check_notice(old, policy, now)

            user = self.users.get_for_update(old.user_id)
            self._validate_slot(user, old.dog_id, new_date, new_time, policy, now.date(),
                                exclude_booking_id=old.id)

            old.status = "cancelled"
            old.cancelled_at = now
            old.cancellation_reason = reason
            # the old row must leave the unique indexes before the new one enters
            session.flush()

            new = Booking(
                user_id=old.user_id,
                dog_id=old.dog_id,
                date=new_date,
                walk_type=walk_type or old.walk_type,
                scheduled_time=new_time,
                status="scheduled",
                notes=old.notes,
                rescheduled_from_id=old.id,
                created_at=now,
            )
            session.add(new)
            session.flush()
            if actor.user_id == user.id:
                self.users.touch_activity(user, now)
            log_event("BOOKING_MOVE", user_id=actor.user_id, entity="booking", entity_id=new.id,
                      metadata={"from_booking_id": old.id, "date": new_date.isoformat(), "time": new_time,
                                "reason": reason})
            return old, new

        old, new = run_atomic(work, conflict=_conflict_from_integrity)
        events.emit(events.booking_cancelled, self, booking=old, by_admin=actor.is_admin)
        events.emit(events.booking_created, self, booking=new)
        return old, new

    def list_upcoming(self, user_id: int, today=None) -> UpcomingBookings:
        return UpcomingBookings(user_id, today or self.clock().date())

    def complete_past(self, today=None) -> int:
        """Mark scheduled bookings dated before ``today`` as completed."""
        now = self.clock()
        today = today or now.date()
        with atomic():
            count = (
                Booking.query
                .filter(Booking.status == "scheduled", Booking.date < today)
                .update({"status": "completed", "completed_at": now}, synchronize_session=False)
            )
            if count:
                log_event("BOOKINGS_AUTO_COMPLETE", entity="booking", metadata={"count": count, "before": today})
        if count:
            logger.info("Marked %d past bookings as completed", count)
        return count
