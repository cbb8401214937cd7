"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout                 (Bearer token or API key)
- POST /auth/change-password        (Bearer token or API key)
- POST /auth/reset-password
- POST /auth/confirm-reset-password

The views only unwrap the request and render the result; all credential
rules live in services.credentials.CredentialCore.
"""
from __future__ import annotations

from flask import Blueprint, request, g

from api.errors import result_response
from utils.decorators import auth_required, get_core

bp = Blueprint("auth", __name__)


@bp.post("/register")
def register():
    """
    Register a new user and sign them in.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, username, password]
          properties:
            email: { type: string }
            username: { type: string }
            password: { type: string }
            full_name: { type: string }
            phone_number: { type: string }
    responses:
      201:
        description: Created (returns tokens and the user)
      400:
        description: Validation error
      409:
        description: Email or username already taken
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().register(payload), success_status=201)


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [username_or_email, password]
           properties:
             username_or_email: { type: string }
             password: { type: string }
             remember_me: { type: boolean }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials, locked or deactivated account
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().login(payload))


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access/refresh pair (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refresh_token]
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns rotated tokens)
      401:
        description: Invalid, expired, revoked or already used refresh token
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().refresh_token(payload))


@bp.post("/logout")
@auth_required()
def logout():
    """
    Logout: revokes the given refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
      - ApiKey: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out (also when the token is unknown or already revoked)
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().logout(payload.get("refresh_token"), user_id=g.current_user.id))


@bp.post("/change-password")
@auth_required()
def change_password():
    """
    Change the caller's password; every refresh token of the account is revoked
    ---
    tags:
      - Auth
    security:
      - Bearer: []
      - ApiKey: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [current_password, new_password]
           properties:
             current_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: Validation error
      401:
        description: Current password is incorrect
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().change_password(g.current_user.id, payload))


@bp.post("/reset-password")
def reset_password():
    """
    Request a password reset (not available yet)
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      400:
        description: Validation error
      501:
        description: Not implemented
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().reset_password(payload))


@bp.post("/confirm-reset-password")
def confirm_reset_password():
    """
    Confirm a password reset (not available yet)
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             email: { type: string }
             new_password: { type: string }
    responses:
      400:
        description: Validation error
      501:
        description: Not implemented
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().confirm_reset_password(payload))
