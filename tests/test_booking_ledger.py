from datetime import date, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.dog import Dog
from services.booking_ledger import _conflict_from_integrity
from services.calendar_guard import CalendarGuard
from services.errors import (
    AuthorizationError,
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
from utils.roles import Actor

DAY = date(2024, 1, 5)


def _book(ledger, user, dog, day=DAY, time="09:00", walk_type="morning"):
    return ledger.create(Actor.from_user(user), dog.id, day, walk_type, time)


def _scheduled(**filters):
    return Booking.query.filter_by(status="scheduled", **filters).count()


# ---------- create ----------
def test_create_holds_slot_and_day_exactly_once(ledger, make_user, make_dog, clock):
    user = make_user(last_activity_at=datetime(2023, 6, 1))
    dog = make_dog()

    booking = _book(ledger, user, dog)

    assert booking.status == "scheduled"
    assert _scheduled(dog_id=dog.id, date=DAY, scheduled_time="09:00") == 1
    assert _scheduled(user_id=user.id, date=DAY) == 1
    assert db.session.get(type(user), user.id).last_activity_at == clock()
    assert AuditLog.query.filter_by(action="BOOKING_CREATE", entity_id=str(booking.id)).count() == 1


def test_experience_level_must_cover_dog_category(ledger, make_user, make_dog):
    dog = make_dog(category="orange")

    with pytest.raises(ExperienceLevelInsufficient):
        _book(ledger, make_user(level="green"), dog)
    with pytest.raises(ExperienceLevelInsufficient):
        _book(ledger, make_user(level="blue"), dog)

    assert _book(ledger, make_user(level="orange"), dog).status == "scheduled"


def test_advance_window_is_inclusive_at_last_day(ledger, make_user, make_dog):
    user = make_user()
    dog = make_dog()

    assert _book(ledger, user, dog, day=date(2024, 1, 15)).date == date(2024, 1, 15)
    with pytest.raises(DateOutOfWindow):
        _book(ledger, user, dog, day=date(2024, 1, 16))
    with pytest.raises(DateOutOfWindow):
        _book(ledger, user, dog, day=date(2023, 12, 31))


def test_today_is_bookable(ledger, make_user, make_dog):
    assert _book(ledger, make_user(), make_dog(), day=date(2024, 1, 1), time="17:00", walk_type="evening")


def test_window_follows_current_setting(ledger, make_user, make_dog, admin):
    PolicyStore().set(Actor.from_user(admin), "booking_advance_days", 3)

    with pytest.raises(DateOutOfWindow):
        _book(ledger, make_user(), make_dog(), day=date(2024, 1, 5))


def test_blocked_date_rejected(ledger, make_user, make_dog, admin):
    CalendarGuard().block(Actor.from_user(admin), DAY, "Shelter inspection")

    with pytest.raises(DateBlocked):
        _book(ledger, make_user(), make_dog())


@pytest.mark.parametrize("kwargs, error", [
    ({"active": False}, UserInactive),
    ({"verified": False}, UserUnverified),
])
def test_account_state_gates_booking(ledger, make_user, make_dog, kwargs, error):
    with pytest.raises(error):
        _book(ledger, make_user(**kwargs), make_dog())


def test_unknown_user_reads_as_inactive(ledger, make_dog):
    with pytest.raises(UserInactive):
        ledger.create(Actor(user_id=9999), make_dog().id, DAY, "morning", "09:00")


def test_unavailable_or_missing_dog(ledger, make_user, make_dog):
    user = make_user()
    with pytest.raises(DogUnavailable):
        _book(ledger, user, make_dog(available=False, reason="Vet visit"))
    with pytest.raises(DogUnavailable):
        ledger.create(Actor.from_user(user), 9999, DAY, "morning", "09:00")


def test_first_failure_wins(ledger, make_user, make_dog):
    # inactive user, unavailable dog, far-away date: the account check comes first
    user = make_user(active=False)
    dog = make_dog(category="orange", available=False)

    with pytest.raises(UserInactive):
        _book(ledger, user, dog, day=date(2025, 1, 1))


def test_slot_taken_by_someone_else(ledger, make_user, make_dog):
    dog = make_dog()
    _book(ledger, make_user(), dog)

    with pytest.raises(SlotAlreadyBooked):
        _book(ledger, make_user(), dog)

    # same dog, other time is still free
    assert _book(ledger, make_user(), dog, time="17:00", walk_type="evening")


def test_one_walk_per_user_per_day(ledger, make_user, make_dog):
    user = make_user()
    _book(ledger, user, make_dog())

    with pytest.raises(UserAlreadyBookedThatDay):
        _book(ledger, user, make_dog(), time="17:00", walk_type="evening")


def test_cancelled_slot_can_be_rebooked(ledger, make_user, make_dog):
    dog = make_dog()
    first = make_user()
    booking = _book(ledger, first, dog)
    ledger.cancel(booking.id, Actor.from_user(first), "Plans changed")

    again = _book(ledger, make_user(), dog)

    assert again.status == "scheduled"
    assert Booking.query.filter_by(dog_id=dog.id, date=DAY).count() == 2


@pytest.mark.parametrize("walk_type, time", [
    ("afternoon", "09:00"),
    ("", "09:00"),
    ("morning", "25:00"),
    ("morning", "9:00 AM"),
    ("morning", ""),
    ("evening", None),
])
def test_malformed_input_rejected_before_storage(ledger, make_user, make_dog, walk_type, time):
    with pytest.raises(InvalidBookingInput):
        ledger.create(Actor.from_user(make_user()), make_dog().id, DAY, walk_type, time)
    assert Booking.query.count() == 0


def test_admin_can_book_for_walker(ledger, make_user, make_dog, admin):
    walker = make_user()
    booking = ledger.create(Actor.from_user(admin), make_dog().id, DAY, "morning", "09:00", user_id=walker.id)
    assert booking.user_id == walker.id

    with pytest.raises(AuthorizationError):
        ledger.create(Actor.from_user(walker), make_dog().id, DAY, "morning", "10:00", user_id=admin.id)


def test_store_rejects_duplicate_scheduled_rows(ledger, make_user, make_dog):
    dog = make_dog()
    booking = _book(ledger, make_user(), dog)

    db.session.add(Booking(user_id=make_user().id, dog_id=dog.id, date=DAY,
                           walk_type="morning", scheduled_time="09:00", status="scheduled"))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()

    assert Booking.query.count() == 1
    assert booking.status == "scheduled"


def test_commit_time_conflict_is_retried_then_reported(ledger, make_user, make_dog, monkeypatch):
    dog = make_dog()
    _book(ledger, make_user(), dog)

    real_validate = ledger._validate_slot
    calls = []

    def stale_first_read(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            # first attempt does not see the competing row
            return Dog.query.get(dog.id)
        return real_validate(*args, **kwargs)

    monkeypatch.setattr(ledger, "_validate_slot", stale_first_read)

    with pytest.raises(SlotAlreadyBooked):
        _book(ledger, make_user(), dog)
    assert len(calls) == 2
    assert _scheduled(dog_id=dog.id) == 1


def test_integrity_messages_map_to_conflicts():
    slot = IntegrityError("INSERT", {}, Exception(
        "UNIQUE constraint failed: bookings.dog_id, bookings.date, bookings.scheduled_time"))
    day = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: bookings.user_id, bookings.date"))
    pg_day = IntegrityError("INSERT", {}, Exception(
        'duplicate key value violates unique constraint "uq_booking_user_day_scheduled"'))

    assert isinstance(_conflict_from_integrity(slot), SlotAlreadyBooked)
    assert isinstance(_conflict_from_integrity(day), UserAlreadyBookedThatDay)
    assert isinstance(_conflict_from_integrity(pg_day), UserAlreadyBookedThatDay)


# ---------- cancel ----------
@pytest.fixture
def morning_walk(ledger, make_user, make_dog):
    user = make_user()
    booking = _book(ledger, user, make_dog(), day=date(2024, 1, 10), time="09:00")
    return user, booking


def test_cancel_with_enough_notice(ledger, clock, morning_walk):
    user, booking = morning_walk
    clock.set(datetime(2024, 1, 9, 20, 0))  # 13h ahead

    cancelled = ledger.cancel(booking.id, Actor.from_user(user), "Feeling ill")

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_at == datetime(2024, 1, 9, 20, 0)
    assert cancelled.cancellation_reason == "Feeling ill"


def test_cancel_inside_notice_window_fails(ledger, clock, morning_walk):
    user, booking = morning_walk
    clock.set(datetime(2024, 1, 9, 22, 0))  # 11h ahead

    with pytest.raises(CancellationTooLate):
        ledger.cancel(booking.id, Actor.from_user(user), "Too late")
    assert Booking.query.get(booking.id).status == "scheduled"


@pytest.mark.parametrize("now", [datetime(2024, 1, 9, 20, 0), datetime(2024, 1, 9, 22, 0)])
def test_admin_cancel_ignores_notice(ledger, clock, morning_walk, admin, now):
    _, booking = morning_walk
    clock.set(now)

    assert ledger.cancel(booking.id, Actor.from_user(admin), "Dog is sick").status == "cancelled"


def test_cancel_exactly_at_cutoff_is_allowed(ledger, clock, morning_walk):
    user, booking = morning_walk
    clock.set(datetime(2024, 1, 9, 21, 0))

    assert ledger.cancel(booking.id, Actor.from_user(user), None).status == "cancelled"


def test_cancel_someone_elses_booking(ledger, make_user, morning_walk):
    _, booking = morning_walk
    with pytest.raises(BookingNotFound):
        ledger.cancel(booking.id, Actor.from_user(make_user()), "Not mine")


def test_cancel_twice_and_missing(ledger, morning_walk):
    user, booking = morning_walk
    actor = Actor.from_user(user)
    ledger.cancel(booking.id, actor, None)

    with pytest.raises(BookingNotCancellable):
        ledger.cancel(booking.id, actor, None)
    with pytest.raises(BookingNotFound):
        ledger.cancel(424242, actor, None)


# ---------- notes ----------
def test_notes_by_owner_and_admin(ledger, morning_walk, admin):
    user, booking = morning_walk

    assert ledger.add_notes(booking.id, Actor.from_user(user), "Pulls on the lead").notes == "Pulls on the lead"
    assert ledger.add_notes(booking.id, Actor.from_user(admin), "Checked").notes == "Checked"


def test_notes_by_stranger_forbidden(ledger, make_user, morning_walk):
    _, booking = morning_walk
    with pytest.raises(AuthorizationError):
        ledger.add_notes(booking.id, Actor.from_user(make_user()), "Hi")


def test_notes_on_completed_but_not_cancelled(ledger, clock, morning_walk):
    user, booking = morning_walk
    clock.set(datetime(2024, 1, 11, 8, 0))
    assert ledger.complete_past() == 1

    assert ledger.add_notes(booking.id, Actor.from_user(user), "Great walk").notes == "Great walk"

    other = _book(ledger, user, Dog.query.get(booking.dog_id), day=date(2024, 1, 20))
    ledger.cancel(other.id, Actor.from_user(user), None)
    with pytest.raises(BookingNotEditable):
        ledger.add_notes(other.id, Actor.from_user(user), "Too late")


# ---------- move ----------
def test_move_cancels_old_and_creates_new(ledger, morning_walk):
    user, booking = morning_walk
    actor = Actor.from_user(user)
    ledger.add_notes(booking.id, actor, "Bring treats")

    old, new = ledger.move(booking.id, actor, date(2024, 1, 12), "17:00", walk_type="evening",
                           reason="Work shift")

    assert old.status == "cancelled"
    assert old.cancellation_reason == "Work shift"
    assert new.status == "scheduled"
    assert new.rescheduled_from_id == old.id
    assert (new.date, new.scheduled_time, new.walk_type) == (date(2024, 1, 12), "17:00", "evening")
    assert new.notes == "Bring treats"
    assert _scheduled(user_id=user.id) == 1


def test_move_within_same_day_excludes_own_row(ledger, morning_walk):
    user, booking = morning_walk

    old, new = ledger.move(booking.id, Actor.from_user(user), booking.date, "10:30")

    assert new.date == old.date
    assert new.walk_type == "morning"
    assert _scheduled(user_id=user.id, date=booking.date) == 1


def test_failed_move_changes_nothing(ledger, make_user, morning_walk):
    user, booking = morning_walk
    taken = _book(ledger, make_user(), Dog.query.get(booking.dog_id), day=date(2024, 1, 12))

    with pytest.raises(SlotAlreadyBooked):
        ledger.move(booking.id, Actor.from_user(user), taken.date, taken.scheduled_time)
    with pytest.raises(DateOutOfWindow):
        ledger.move(booking.id, Actor.from_user(user), date(2024, 3, 1), "09:00")

    assert Booking.query.get(booking.id).status == "scheduled"
    assert Booking.query.count() == 2


def test_move_respects_notice_for_walkers_only(ledger, clock, morning_walk, admin):
    user, booking = morning_walk
    clock.set(datetime(2024, 1, 10, 6, 0))

    with pytest.raises(CancellationTooLate):
        ledger.move(booking.id, Actor.from_user(user), date(2024, 1, 12), "09:00")

    _, new = ledger.move(booking.id, Actor.from_user(admin), date(2024, 1, 12), "09:00")
    assert new.user_id == user.id


def test_move_by_stranger(ledger, make_user, morning_walk):
    _, booking = morning_walk
    with pytest.raises(BookingNotFound):
        ledger.move(booking.id, Actor.from_user(make_user()), date(2024, 1, 12), "09:00")


# ---------- listing / completion ----------
def test_list_upcoming_is_ordered_and_restartable(ledger, clock, make_user, make_dog):
    user = make_user()
    dog = make_dog()
    for day, time in [(date(2024, 1, 5), "09:00"), (date(2024, 1, 2), "17:00"), (date(2024, 1, 3), "08:30")]:
        _book(ledger, user, dog, day=day, time=time)
    dropped = _book(ledger, user, dog, day=date(2024, 1, 4))
    ledger.cancel(dropped.id, Actor.from_user(user), None)
    _book(ledger, make_user(), dog, day=date(2024, 1, 6))

    clock.set(datetime(2024, 1, 3, 7, 0))
    upcoming = ledger.list_upcoming(user.id)

    first = [(b.date, b.scheduled_time) for b in upcoming]
    second = [(b.date, b.scheduled_time) for b in upcoming]
    assert first == [(date(2024, 1, 3), "08:30"), (date(2024, 1, 5), "09:00")]
    assert first == second


def test_complete_past_only_touches_earlier_days(ledger, clock, make_user, make_dog):
    user = make_user()
    dog = make_dog()
    early = _book(ledger, user, dog, day=date(2024, 1, 2))
    late = _book(ledger, user, dog, day=date(2024, 1, 9))

    clock.set(datetime(2024, 1, 5, 0, 0))
    assert ledger.complete_past() == 1
    assert ledger.complete_past() == 0

    assert Booking.query.get(early.id).status == "completed"
    assert Booking.query.get(late.id).status == "scheduled"
