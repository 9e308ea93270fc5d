from functools import wraps
from flask import g, jsonify

from services.errors import AuthorizationError
from utils.roles import SUPER_ADMIN

def require_admin(actor):
    """Single capability check for admin-gated service operations."""
    if actor is None or not actor.is_admin:
        raise AuthorizationError("Admin role required")

def require_owner_or_admin(actor, owner_id: int):
    if actor is None or (actor.user_id != owner_id and not actor.is_admin):
        raise AuthorizationError("Not allowed to modify this booking")

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return jsonify(error="Authentication required"), 401

            if SUPER_ADMIN not in actor.roles and not actor.roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
