from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models.user import User
from utils.roles import Actor

def load_current_user():
    sess = get_session_from_request()
    g.user = None
    g.actor = None
    g.session = sess
    if not sess:
        return
    user = User.query.get(sess.user_id)
    if user is None:
        return
    g.user = user
    g.actor = Actor.from_user(user)

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "actor", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
