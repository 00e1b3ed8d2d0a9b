from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from security.credentials import api_key_matches, get_api_key, get_bearer_token
from security.errors import MissingCredential, Unauthorized


def get_auth_service():
    return current_app.extensions["auth_service"]


def jwt_required():
    """
    Resolve the acting user from 'Authorization: Bearer <access token>'.
    Sets g.current_user_id; every failure becomes Unauthorized (401).
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                token = get_bearer_token(request.headers)
            except MissingCredential:
                raise Unauthorized() from None
            g.current_user_id = get_auth_service().authenticate(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def api_key_required():
    """Gate a low-trust internal callback on the shared API key."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            header = current_app.config.get("API_KEY_HEADER", "X-Api-Key")
            try:
                presented = get_api_key(request.headers, header)
            except MissingCredential:
                raise Unauthorized() from None
            if not api_key_matches(presented, current_app.config.get("POLKA_KEY")):
                raise Unauthorized()
            return fn(*args, **kwargs)

        return wrapper

    return decorator
