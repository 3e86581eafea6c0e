from __future__ import annotations
from functools import wraps
from flask import request, g

from api import get_sessions
from utils.errors import Unauthorized

BEARER_PREFIX = "bearer "


def bearer_token() -> str:
    """Return the token from `Authorization: Bearer <token>` (scheme is case-insensitive)."""
    auth = request.headers.get("Authorization", "")
    if not auth.lower().startswith(BEARER_PREFIX):
        raise Unauthorized()
    token = auth[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized()
    return token


def jwt_required():
    """Resolve the bearer token to a live user and attach it as g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.current_user = get_sessions().me(bearer_token())
            return fn(*args, **kwargs)

        return wrapper

    return decorator
