from datetime import date

import pytest

from services import events
from utils import notifications
from utils.emailer import send_email
from utils.roles import Actor


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to_email, subject, body):
        sent.append((to_email, subject, body))
        return True, None

    monkeypatch.setattr(notifications, "send_email", fake_send)
    return sent


def test_booking_created_mails_the_walker(ledger, make_user, make_dog, outbox):
    user = make_user()
    dog = make_dog()

    with events.booking_created.connected_to(notifications.on_booking_created):
        ledger.create(Actor.from_user(user), dog.id, date(2024, 1, 5), "morning", "09:00")

    assert len(outbox) == 1
    to_email, subject, body = outbox[0]
    assert to_email == user.email
    assert subject == "Walk booked"
    assert "2024-01-05" in body and "09:00" in body


def test_cancel_mail_carries_reason(ledger, make_user, make_dog, outbox):
    user = make_user()
    booking = ledger.create(Actor.from_user(user), make_dog().id, date(2024, 1, 5), "morning", "09:00")

    with events.booking_cancelled.connected_to(notifications.on_booking_cancelled):
        ledger.cancel(booking.id, Actor.from_user(user), "Feeling unwell")

    assert len(outbox) == 1
    assert "Feeling unwell" in outbox[0][2]


def test_handlers_not_connected_when_disabled(app, ledger, make_user, make_dog, outbox):
    assert not app.config["NOTIFICATIONS_ENABLED"]
    user = make_user()
    ledger.create(Actor.from_user(user), make_dog().id, date(2024, 1, 5), "morning", "09:00")
    assert outbox == []


def test_send_email_without_smtp_host(app):
    app.config["SMTP_HOST"] = None
    assert send_email("walker@example.org", "Hi", "Body") == (False, "Email not configured")
