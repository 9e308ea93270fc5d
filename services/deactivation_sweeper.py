import logging
import os
import socket
import uuid
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models.sweep_lease import SweepLease
from services import events
from services.policy_store import PolicyStore
from services.transaction import atomic
from services.user_directory import UserDirectory
from utils.audit import log_event
from utils.clock import shelter_now

logger = logging.getLogger(__name__)

AUTO_DEACTIVATION_REASON = "auto_inactivity"


@dataclass
class SweepResult:
    deactivated_ids: list = field(default_factory=list)
    skipped: bool = False


class DeactivationSweeper:
    """
    Periodic pass that deactivates dormant walker accounts.

    Single-flight: a run first takes the ``sweep_leases`` row with a
    conditional update; an overlapping run finds it held and skips.
    Re-running with no new activity changes nothing.
    """

    LEASE_NAME = "deactivation-sweep"

    def __init__(self, users=None, policies=None, clock=shelter_now, lease_seconds=None, holder=None):
        self.clock = clock
        self.users = users or UserDirectory(clock=clock)
        self.policies = policies or PolicyStore()
        self.lease_seconds = lease_seconds
        self.holder = (holder or f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}")[:64]

    def _acquire(self, now) -> bool:
        ttl = self.lease_seconds or current_app.config.get("SWEEP_LEASE_SECONDS", 600)
        expires_at = now + timedelta(seconds=ttl)
        try:
            with atomic() as session:
                taken = (
                    SweepLease.query
                    .filter(SweepLease.name == self.LEASE_NAME, SweepLease.expires_at <= now)
                    .update({"holder": self.holder, "expires_at": expires_at}, synchronize_session=False)
                )
                if taken:
                    return True
                if SweepLease.query.get(self.LEASE_NAME) is not None:
                    return False
                session.add(SweepLease(name=self.LEASE_NAME, holder=self.holder, expires_at=expires_at))
            return True
        except IntegrityError:
            # another runner created the row first
            return False

    def _release(self, now) -> None:
        with atomic():
            (
                SweepLease.query
                .filter_by(name=self.LEASE_NAME, holder=self.holder)
                .update({"holder": None, "expires_at": now}, synchronize_session=False)
            )

    def run(self, now=None) -> SweepResult:
        now = now or self.clock()
        if not self._acquire(now):
            logger.info("Deactivation sweep already running elsewhere, skipping")
            return SweepResult(skipped=True)

        try:
            with atomic():
                policy = self.policies.snapshot()
                cutoff = now - timedelta(days=policy.auto_deactivation_days)
                dormant = self.users.dormant_users(cutoff)
                for user in dormant:
                    self.users.deactivate(user, reason=AUTO_DEACTIVATION_REASON, when=now)
                    log_event("USER_AUTO_DEACTIVATE", entity="user", entity_id=user.id,
                              metadata={"last_activity_at": user.last_activity_at,
                                        "threshold_days": policy.auto_deactivation_days})
                deactivated_ids = [user.id for user in dormant]
        finally:
            self._release(now)

        for user in dormant:
            events.emit(events.user_deactivated, self, user=user, reason=AUTO_DEACTIVATION_REASON)

        logger.info("Deactivation sweep finished: %d account(s) deactivated", len(deactivated_ids))
        return SweepResult(deactivated_ids=deactivated_ids)
