from datetime import datetime, timedelta

import pytest

from models.audit_log import AuditLog
from models.sweep_lease import SweepLease
from models.user import User
from models import db
from services import events
from services.deactivation_sweeper import DeactivationSweeper
from services.policy_store import PolicyStore
from utils.roles import Actor

NOW = datetime(2025, 1, 10, 3, 0)


@pytest.fixture
def sweeper(app, clock):
    return DeactivationSweeper(clock=clock, holder="test-runner")


@pytest.fixture
def population(make_user):
    return {
        "dormant": make_user(last_activity_at=datetime(2023, 12, 1)),
        "recent": make_user(last_activity_at=datetime(2024, 11, 1)),
        "boundary": make_user(last_activity_at=NOW - timedelta(days=365)),
        "admin": make_user(roles=("ADMIN",), last_activity_at=datetime(2020, 1, 1)),
        "super": make_user(roles=("SUPER_ADMIN",), last_activity_at=datetime(2020, 1, 1)),
        "already": make_user(active=False, last_activity_at=datetime(2020, 1, 1)),
    }


def _active(population):
    return {name for name, user in population.items() if User.query.get(user.id).is_active}


def test_sweep_deactivates_only_dormant_walkers(sweeper, population):
    result = sweeper.run(now=NOW)

    assert result.skipped is False
    assert result.deactivated_ids == [population["dormant"].id]
    assert _active(population) == {"recent", "boundary", "admin", "super"}

    dormant = User.query.get(population["dormant"].id)
    assert dormant.deactivated_at == NOW
    assert dormant.deactivation_reason == "auto_inactivity"


def test_sweep_is_idempotent(sweeper, population):
    sweeper.run(now=NOW)
    audit_rows = AuditLog.query.filter_by(action="USER_AUTO_DEACTIVATE").count()

    again = sweeper.run(now=NOW)

    assert again.deactivated_ids == []
    assert _active(population) == {"recent", "boundary", "admin", "super"}
    assert AuditLog.query.filter_by(action="USER_AUTO_DEACTIVATE").count() == audit_rows


def test_sweep_reads_current_threshold(sweeper, population, admin):
    PolicyStore().set(Actor.from_user(admin), "auto_deactivation_days", 30)

    result = sweeper.run(now=NOW)

    assert set(result.deactivated_ids) == {population["dormant"].id, population["recent"].id,
                                           population["boundary"].id}


def test_overlapping_run_is_skipped(sweeper, population):
    db.session.add(SweepLease(name=DeactivationSweeper.LEASE_NAME, holder="other-host",
                              expires_at=NOW + timedelta(minutes=5)))
    db.session.commit()

    result = sweeper.run(now=NOW)

    assert result.skipped is True
    assert "dormant" in _active(population)


def test_expired_lease_is_taken_over(sweeper, population):
    db.session.add(SweepLease(name=DeactivationSweeper.LEASE_NAME, holder="crashed-host",
                              expires_at=NOW - timedelta(minutes=1)))
    db.session.commit()

    result = sweeper.run(now=NOW)

    assert result.deactivated_ids == [population["dormant"].id]
    lease = SweepLease.query.get(DeactivationSweeper.LEASE_NAME)
    assert lease.holder is None
    assert lease.expires_at == NOW


def test_sweep_emits_event_per_user(sweeper, population):
    received = []

    def listener(sender, user, **payload):
        received.append(user.id)

    with events.user_deactivated.connected_to(listener):
        sweeper.run(now=NOW)

    assert received == [population["dormant"].id]
