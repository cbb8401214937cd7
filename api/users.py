from __future__ import annotations

from flask import Blueprint, request, g

from api.errors import result_response
from utils.decorators import auth_required, get_core

bp = Blueprint("users", __name__)


@bp.get("/users/me")
@auth_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Users
    security:
      - Bearer: []
      - ApiKey: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return result_response(get_core().get_account_info(g.current_user.id))


@bp.put("/users/me")
@auth_required()
def update_me():
    """
    Update the current user's profile (only non-empty fields are applied)
    ---
    tags:
      - Users
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
             full_name: { type: string }
             avatar_url: { type: string }
             phone_number: { type: string }
    responses:
      200:
        description: Updated profile
      400:
        description: Validation error
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().update_account_info(g.current_user.id, payload))
