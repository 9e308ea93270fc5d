import hashlib
from datetime import timedelta
from flask import request, current_app

from models import db
from models.session import Session
from utils.clock import shelter_now

def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def get_session_from_request():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "walkbook_session")
    raw_token = request.cookies.get(cookie_name)
    if not raw_token:
        return None

    token_hash = _hash_token(raw_token)
    now = shelter_now()

    sess = (
        Session.query
        .filter_by(token_hash=token_hash, revoked=False)
        .first()
    )
    if not sess:
        return None

    # Absolute expiry
    if sess.expires_at <= now:
        return None

    # Idle timeout
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1200)
    last_seen = sess.last_seen_at or sess.created_at
    if (last_seen + timedelta(seconds=idle_seconds)) <= now:
        return None

    # Update activity timestamp (touch)
    sess.last_seen_at = now
    db.session.commit()

    return sess
