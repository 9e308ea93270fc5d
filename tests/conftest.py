import itertools
from datetime import date, datetime

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.dog import Dog
from models.user import User, Role
from services.booking_ledger import BookingLedger


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def set(self, now):
        self.now = now


TODAY = date(2024, 1, 1)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 1, 8, 0))


@pytest.fixture
def ledger(app, clock):
    return BookingLedger(clock=clock)


@pytest.fixture
def make_user(app, clock):
    counter = itertools.count(1)

    def _make(level="green", verified=True, active=True, roles=(), last_activity_at=None):
        n = next(counter)
        user = User(
            email=f"walker{n}@example.org",
            name=f"Walker {n}",
            experience_level=level,
            is_verified=verified,
            is_active=active,
            last_activity_at=last_activity_at or clock(),
            terms_accepted_at=clock(),
            created_at=clock(),
        )
        for name in roles:
            user.roles.append(Role.query.filter_by(name=name).one())
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_dog(app):
    counter = itertools.count(1)

    def _make(category="green", available=True, reason=None):
        n = next(counter)
        dog = Dog(
            name=f"Dog {n}",
            breed="Mixed",
            category=category,
            size="medium",
            is_available=available,
            unavailable_reason=reason,
        )
        db.session.add(dog)
        db.session.commit()
        return dog

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(level="orange", roles=("ADMIN",))
