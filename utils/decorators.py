from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app


def get_core():
    """The CredentialCore built by create_app()."""
    return current_app.extensions["credential_core"]


def _authenticate_bearer(core, token: str):
    claims = core.issuer.verify_access_token(token)
    if claims is None:
        abort(401, description="Invalid or expired token")
    user = core.storage.find_account_by_id(claims.get("sub"))
    if not user or not user.is_active:
        abort(401, description="User not found or inactive")
    g.current_user = user
    g.current_user_roles = claims.get("roles", list(user.roles or []))
    g.current_token_jti = claims.get("jti")
    g.auth_type = "bearer"


def _authenticate_api_key(core, api_key: str):
    result = core.validate_api_key(api_key)
    if not result.success:
        abort(401, description=result.message)
    user = result.data
    g.current_user = user
    g.current_user_roles = list(user.roles or [])
    g.current_token_jti = None
    g.auth_type = "api_key"


def auth_required():
    """
    Accept either "Authorization: Bearer <access token>" or "X-API-Key: <key>".
    On success g.current_user / g.current_user_roles / g.auth_type are set.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            core = get_core()
            auth = request.headers.get("Authorization", "")
            api_key = request.headers.get("X-API-Key", "").strip()
            if auth.startswith("Bearer "):
                _authenticate_bearer(core, auth.split(" ", 1)[1].strip())
            elif api_key:
                _authenticate_api_key(core, api_key)
            else:
                abort(401, description="Missing or invalid Authorization header")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
