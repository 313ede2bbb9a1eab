# admin/auth.py
from functools import wraps

from flask import g, jsonify, session

from utils.helpers import get_request_actor
from workflow.errors import Forbidden

# -------------------------------------------------
# Login is handled upstream; the session carries user_id and role.
# These decorators only read it and expose g.actor to the view.
# -------------------------------------------------
def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        actor = get_request_actor(session)
        if actor is None:
            return jsonify({"error": "Login required", "code": "unauthenticated"}), 401
        g.actor = actor
        return f(*args, **kwargs)
    return wrapper


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        @login_required
        def wrapper(*args, **kwargs):
            if g.actor.role not in roles:
                raise Forbidden(required_roles=list(roles))
            return f(*args, **kwargs)
        return wrapper
    return decorator
