import logging
import random
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from models import db
from services.errors import ConflictError, TransientError

logger = logging.getLogger(__name__)


# Backends whose partial indexes keep the "one scheduled row" rules
SUPPORTED_DIALECTS = ("postgresql", "sqlite")


def _apply_timeout(session, seconds):
    # Scoped to the current transaction wherever the backend allows it
    dialect = session.get_bind().dialect.name
    if dialect not in SUPPORTED_DIALECTS:
        raise RuntimeError(f"Unsupported database backend: {dialect}")
    ms = int(seconds * 1000)
    if dialect == "postgresql":
        session.execute(text(f"SET LOCAL statement_timeout = {ms}"))
        session.execute(text(f"SET LOCAL lock_timeout = {ms}"))
    else:
        session.execute(text(f"PRAGMA busy_timeout = {ms}"))


@contextmanager
def atomic():
    """
    One unit of work on the request's session: commits when the block
    finishes, rolls back on any exception (client disconnects and
    KeyboardInterrupt included) so nothing is left half-written.
    Lock waits and statement timeouts surface as TransientError.
    """
    session = db.session
    try:
        _apply_timeout(session, current_app.config.get("TRANSACTION_TIMEOUT_SECONDS", 5))
        yield session
        session.commit()
    except OperationalError as exc:
        session.rollback()
        raise TransientError(reason=type(exc.orig).__name__ if exc.orig else None) from exc
    except BaseException:
        session.rollback()
        raise


def _backoff(attempt: int) -> float:
    return 0.02 * (2 ** (attempt - 1)) + random.uniform(0, 0.02)


def run_atomic(work, retries=None, conflict=None):
    """
    Run ``work(session)`` inside ``atomic()`` and return its result.

    A uniqueness violation at flush/commit or a transient storage failure
    re-runs the whole unit (reads included) up to ``retries`` times, so a
    lost race is re-validated against the winner's row. When attempts run
    out, an IntegrityError is translated with ``conflict(exc)``.
    """
    attempts = max(1, retries or current_app.config.get("BOOKING_CONFLICT_RETRIES", 3))
    for attempt in range(1, attempts + 1):
        try:
            with atomic() as session:
                return work(session)
        except (IntegrityError, TransientError) as exc:
            if attempt == attempts:
                if isinstance(exc, IntegrityError):
                    raise (conflict(exc) if conflict else ConflictError()) from exc
                raise
            logger.info(
                "Retrying transaction after %s (attempt %d/%d)",
                type(exc).__name__, attempt, attempts,
            )
            time.sleep(_backoff(attempt))
