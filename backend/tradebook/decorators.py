# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


ACTOR_HEADER = "X-Actor-Id"


def _parse_actor_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    actor_id = int(raw)
    return actor_id if actor_id > 0 else None


def require_actor(f):
    """
    Require an acting user id on the request.

    Sets g.actor_id from the X-Actor-Id header. Authentication itself is
    handled upstream; this only records who is performing the write.

    Returns 401 if the header is missing or not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = _parse_actor_id(request.headers.get(ACTOR_HEADER))
        if actor_id is None:
            return jsonify({"error": f"{ACTOR_HEADER} header required"}), 401

        g.actor_id = actor_id
        return f(*args, **kwargs)

    return decorated_function
